"""Regulation lifecycle: which regulations are in force, and transitions between states.

Transitions return a new Plugin; plugins held by the registry are never mutated.
"""

from __future__ import annotations

from typing import AbstractSet, List

from .models import DeclarativeRule, Plugin, Regulation, RegulationStatus

DEFAULT_SKIPPED_STATUSES = frozenset({RegulationStatus.SUPERSEDED.value, RegulationStatus.REVOKED.value})


def applicable_regulations(
    plugin: Plugin, skipped_statuses: AbstractSet[str] = DEFAULT_SKIPPED_STATUSES
) -> List[Regulation]:
    return [reg for reg in plugin.regulations if reg.status not in skipped_statuses]


def skipped_regulations(
    plugin: Plugin, skipped_statuses: AbstractSet[str] = DEFAULT_SKIPPED_STATUSES
) -> List[Regulation]:
    return [reg for reg in plugin.regulations if reg.status in skipped_statuses]


def active_rules(
    plugin: Plugin, skipped_statuses: AbstractSet[str] = DEFAULT_SKIPPED_STATUSES
) -> List[DeclarativeRule]:
    """Enabled rules whose regulation exists and is in force, in declaration order."""
    applicable_ids = {reg.id for reg in applicable_regulations(plugin, skipped_statuses)}
    return [rule for rule in plugin.rules if rule.enabled and rule.regulation_id in applicable_ids]


def _require(plugin: Plugin, regulation_id: str) -> Regulation:
    regulation = plugin.get_regulation(regulation_id)
    if regulation is None:
        raise KeyError(f"Regulation {regulation_id} not found in plugin {plugin.id}.")
    return regulation


def _replace_regulation(plugin: Plugin, updated: Regulation, *, append: Regulation | None = None) -> Plugin:
    regulations = [updated if reg.id == updated.id else reg for reg in plugin.regulations]
    if append is not None:
        regulations = [reg for reg in regulations if reg.id != append.id] + [append]
    return plugin.model_copy(update={"regulations": regulations})


def supersede_regulation(plugin: Plugin, old_id: str, new_regulation: Regulation) -> Plugin:
    """The old regulation is fully replaced; its rules stop being evaluated."""
    old = _require(plugin, old_id)
    retired = old.model_copy(
        update={
            "status": RegulationStatus.SUPERSEDED.value,
            "superseded_by": new_regulation.id,
            "revocation_date": new_regulation.effective_date,
        }
    )
    successor = new_regulation.model_copy(update={"status": RegulationStatus.ACTIVE.value})
    return _replace_regulation(plugin, retired, append=successor)


def amend_regulation(plugin: Plugin, original_id: str, amendment: Regulation) -> Plugin:
    """The original stays partially in force; the amendment becomes active."""
    original = _require(plugin, original_id)
    amended = original.model_copy(
        update={
            "status": RegulationStatus.AMENDED.value,
            "amended_by": [*original.amended_by, amendment.id],
        }
    )
    active_amendment = amendment.model_copy(
        update={"status": RegulationStatus.ACTIVE.value, "amends": [original_id]}
    )
    return _replace_regulation(plugin, amended, append=active_amendment)


def revoke_regulation(plugin: Plugin, regulation_id: str, revocation_date: str) -> Plugin:
    regulation = _require(plugin, regulation_id)
    revoked = regulation.model_copy(
        update={"status": RegulationStatus.REVOKED.value, "revocation_date": revocation_date}
    )
    return _replace_regulation(plugin, revoked)
