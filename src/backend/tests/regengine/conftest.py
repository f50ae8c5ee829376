import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import regengine...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

import pytest

from regengine.config import EngineConfig
from regengine.models import Condition, DeclarativeRule, LookupTable, Plugin, Regulation
from regengine.registry import reset_plugin_system
from regengine.sequence import reset_plugin_finding_counter


@pytest.fixture(autouse=True)
def _isolated_plugin_state():
    reset_plugin_finding_counter()
    reset_plugin_system()
    yield
    reset_plugin_finding_counter()
    reset_plugin_system()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def make_regulation():
    def _make(*, id: str = "reg-1", short_ref: str = "DL 1/2020", status: str = "active", **kwargs) -> Regulation:
        kwargs.setdefault("area", "thermal")
        return Regulation(id=id, short_ref=short_ref, status=status, **kwargs)

    return _make


@pytest.fixture
def make_rule():
    def _make(
        *,
        id: str = "R-1",
        regulation_id: str = "reg-1",
        conditions=None,
        exclusions=None,
        **kwargs,
    ) -> DeclarativeRule:
        kwargs.setdefault("article", "Art. 1")
        kwargs.setdefault("description", "Rule fired")
        kwargs.setdefault("remediation", "Fix it")
        return DeclarativeRule(
            id=id,
            regulation_id=regulation_id,
            conditions=[Condition.model_validate(c) for c in (conditions or [])],
            exclusions=[Condition.model_validate(c) for c in (exclusions or [])],
            **kwargs,
        )

    return _make


@pytest.fixture
def make_table():
    def _make(*, id: str, keys, values, sub_key=None) -> LookupTable:
        return LookupTable(id=id, keys=list(keys), values=values, sub_key=sub_key)

    return _make


@pytest.fixture
def make_plugin(make_regulation):
    def _make(
        *,
        id: str = "test-plugin",
        name: str = "Test Plugin",
        version: str = "1.0.0",
        areas=("thermal",),
        regulations=None,
        rules=(),
        lookup_tables=(),
        computed_fields=(),
    ) -> Plugin:
        return Plugin(
            id=id,
            name=name,
            version=version,
            areas=list(areas),
            regulations=list(regulations) if regulations is not None else [make_regulation()],
            rules=list(rules),
            lookup_tables=list(lookup_tables),
            computed_fields=list(computed_fields),
        )

    return _make
