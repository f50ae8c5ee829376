from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    PASS = "pass"


class RegulationStatus(str, Enum):
    ACTIVE = "active"
    AMENDED = "amended"
    SUPERSEDED = "superseded"
    REVOKED = "revoked"
    DRAFT = "draft"


class IngestionStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETE = "complete"
    VERIFIED = "verified"


class OperatorFamily(str, Enum):
    DIRECT = "direct"
    MEMBERSHIP = "membership"
    RANGE = "range"
    EXISTENCE = "existence"
    ORDINAL = "ordinal"
    REACTION_CLASS = "reaction_class"
    LOOKUP = "lookup"


class Operator(str, Enum):
    EQ = "=="
    NEQ = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    IN = "in"
    NOT_IN = "not_in"
    BETWEEN = "between"
    NOT_IN_RANGE = "not_in_range"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    ORDINAL_LT = "ordinal_lt"
    ORDINAL_LTE = "ordinal_lte"
    ORDINAL_GT = "ordinal_gt"
    ORDINAL_GTE = "ordinal_gte"
    REACTION_CLASS_LT = "reaction_class_lt"
    REACTION_CLASS_LTE = "reaction_class_lte"
    REACTION_CLASS_GT = "reaction_class_gt"
    REACTION_CLASS_GTE = "reaction_class_gte"
    LOOKUP_GT = "lookup_gt"
    LOOKUP_GTE = "lookup_gte"
    LOOKUP_LT = "lookup_lt"
    LOOKUP_LTE = "lookup_lte"
    LOOKUP_EQ = "lookup_eq"
    LOOKUP_NEQ = "lookup_neq"

    @classmethod
    def parse(cls, raw: Any) -> Optional["Operator"]:
        """Return the operator for a raw literal, or None when it is not one we know."""
        try:
            return cls(raw)
        except ValueError:
            return None

    @property
    def family(self) -> OperatorFamily:
        return _OPERATOR_FAMILIES[self]

    @property
    def comparison(self) -> str:
        """Comparison suffix for the suffixed families (``lookup_gte`` -> ``gte``)."""
        return self.value.rsplit("_", 1)[-1]


_OPERATOR_FAMILIES: Dict[Operator, OperatorFamily] = {
    Operator.EQ: OperatorFamily.DIRECT,
    Operator.NEQ: OperatorFamily.DIRECT,
    Operator.GT: OperatorFamily.DIRECT,
    Operator.GTE: OperatorFamily.DIRECT,
    Operator.LT: OperatorFamily.DIRECT,
    Operator.LTE: OperatorFamily.DIRECT,
    Operator.IN: OperatorFamily.MEMBERSHIP,
    Operator.NOT_IN: OperatorFamily.MEMBERSHIP,
    Operator.BETWEEN: OperatorFamily.RANGE,
    Operator.NOT_IN_RANGE: OperatorFamily.RANGE,
    Operator.EXISTS: OperatorFamily.EXISTENCE,
    Operator.NOT_EXISTS: OperatorFamily.EXISTENCE,
    Operator.ORDINAL_LT: OperatorFamily.ORDINAL,
    Operator.ORDINAL_LTE: OperatorFamily.ORDINAL,
    Operator.ORDINAL_GT: OperatorFamily.ORDINAL,
    Operator.ORDINAL_GTE: OperatorFamily.ORDINAL,
    Operator.REACTION_CLASS_LT: OperatorFamily.REACTION_CLASS,
    Operator.REACTION_CLASS_LTE: OperatorFamily.REACTION_CLASS,
    Operator.REACTION_CLASS_GT: OperatorFamily.REACTION_CLASS,
    Operator.REACTION_CLASS_GTE: OperatorFamily.REACTION_CLASS,
    Operator.LOOKUP_GT: OperatorFamily.LOOKUP,
    Operator.LOOKUP_GTE: OperatorFamily.LOOKUP,
    Operator.LOOKUP_LT: OperatorFamily.LOOKUP,
    Operator.LOOKUP_LTE: OperatorFamily.LOOKUP,
    Operator.LOOKUP_EQ: OperatorFamily.LOOKUP,
    Operator.LOOKUP_NEQ: OperatorFamily.LOOKUP,
}


class RecordModel(BaseModel):
    # Plugin definitions are authored as camelCase JSON; Python code uses snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class Regulation(RecordModel):
    id: str = ""
    short_ref: str = ""
    title: str = ""
    status: str = RegulationStatus.ACTIVE.value
    area: str = ""
    effective_date: Optional[str] = None
    revocation_date: Optional[str] = None
    superseded_by: Optional[str] = None
    amended_by: List[str] = Field(default_factory=list)
    amends: List[str] = Field(default_factory=list)
    ingestion_status: Optional[str] = None
    rules_count: Optional[int] = None
    tags: List[str] = Field(default_factory=list)


class Condition(RecordModel):
    field: str = ""
    # Kept as the raw literal; Operator.parse() closes it over the known set.
    operator: str = ""
    value: Any = None
    scale: Optional[List[str]] = None
    table: Optional[str] = None
    keys: Optional[List[str]] = None
    sub_key: Optional[str] = None

    @property
    def parsed_operator(self) -> Optional[Operator]:
        return Operator.parse(self.operator)


class DeclarativeRule(RecordModel):
    id: str = ""
    regulation_id: str = ""
    article: str = ""
    description: str = ""
    severity: Severity = Severity.WARNING
    conditions: List[Condition] = Field(default_factory=list)
    exclusions: List[Condition] = Field(default_factory=list)
    remediation: str = ""
    current_value_template: Optional[str] = None
    required_value: Optional[str] = None
    enabled: bool = True
    tags: List[str] = Field(default_factory=list)


class LookupTable(RecordModel):
    id: str = ""
    description: str = ""
    keys: List[str] = Field(default_factory=list)
    values: Dict[str, Any] = Field(default_factory=dict)
    sub_key: Optional[str] = None


class ArithmeticComputation(RecordModel):
    type: Literal["arithmetic"] = "arithmetic"
    operands: List[str] = Field(default_factory=list)
    operation: str = "divide"


class TierStep(RecordModel):
    min: Optional[float] = None
    max: Optional[float] = None
    result: Any = None


class TierComputation(RecordModel):
    type: Literal["tier"] = "tier"
    field: str = ""
    tiers: List[TierStep] = Field(default_factory=list)


class ConditionalComputation(RecordModel):
    type: Literal["conditional"] = "conditional"
    field: str = ""
    if_true: Any = None
    if_false: Any = None


Computation = Union[ArithmeticComputation, TierComputation, ConditionalComputation]


class ComputedField(RecordModel):
    id: str = ""
    description: str = ""
    computation: Computation = Field(discriminator="type")


class Plugin(RecordModel):
    id: str = ""
    name: str = ""
    version: str = ""
    areas: List[str] = Field(default_factory=list)
    description: str = ""
    author: str = ""
    last_updated: Optional[str] = None
    regulations: List[Regulation] = Field(default_factory=list)
    rules: List[DeclarativeRule] = Field(default_factory=list)
    lookup_tables: List[LookupTable] = Field(default_factory=list)
    computed_fields: List[ComputedField] = Field(default_factory=list)

    def get_regulation(self, regulation_id: str) -> Optional[Regulation]:
        for reg in self.regulations:
            if reg.id == regulation_id:
                return reg
        return None


class Finding(RecordModel):
    id: str
    source_rule_id: str
    area: str = ""
    regulation: str = ""
    article: str = ""
    description: str = ""
    severity: Severity = Severity.WARNING
    remediation: str = ""
    current_value: Optional[str] = None
    required_value: Optional[str] = None


class EvaluationResult(RecordModel):
    plugin_id: str
    plugin_version: str
    findings: List[Finding] = Field(default_factory=list)
    total_active_rules: int = 0
    rules_skipped: List[str] = Field(default_factory=list)
    regulations_used: List[str] = Field(default_factory=list)
    regulations_skipped: List[str] = Field(default_factory=list)
    evaluated_at: datetime


class PluginRunReport(RecordModel):
    run_id: str
    generated_at: datetime

    results: List[EvaluationResult] = Field(default_factory=list)
    findings: List[Finding] = Field(default_factory=list)
    totals: Dict[Severity, int] = Field(default_factory=dict)
