"""Filter and visibility schemas.

The per-page PageFilterSpec is an inert data artifact: the build only
produces and validates it, a shared browser runtime consumes it.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FilterOperator(str, Enum):
    """How an input's value filters a target variable."""

    EQUALS = "equals"
    IN_SET = "in_set"
    RANGE = "range"
    OVERRIDE = "override"


class ConditionOp(str, Enum):
    """Operators of a show_when condition tree."""

    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    NOT_IN = "not_in"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    AND = "and"
    OR = "or"
    NOT = "not"


COMPARISON_OPS = frozenset(
    {
        ConditionOp.EQ,
        ConditionOp.NEQ,
        ConditionOp.IN,
        ConditionOp.NOT_IN,
        ConditionOp.GT,
        ConditionOp.LT,
        ConditionOp.GTE,
        ConditionOp.LTE,
    }
)


class Condition(BaseModel):
    """A node of a visibility predicate.

    Comparisons carry ``var`` and ``val``; ``and``/``or`` carry two or more
    ``conditions``; ``not`` carries exactly one.
    """

    model_config = ConfigDict(frozen=True)

    op: ConditionOp
    var: Optional[str] = None
    val: Any = None
    conditions: list["Condition"] = Field(default_factory=list)

    @field_validator("val", mode="before")
    @classmethod
    def _collection_to_list(cls, value: Any) -> Any:
        # Same normalisation as the show_when expression parser
        if isinstance(value, (set, frozenset)):
            return sorted(value, key=repr)
        if isinstance(value, tuple):
            return list(value)
        return value

    @model_validator(mode="after")
    def _check_shape(self):
        if self.op in COMPARISON_OPS:
            if not self.var:
                raise ValueError(f"Condition '{self.op.value}' requires 'var'")
            if self.conditions:
                raise ValueError(f"Condition '{self.op.value}' cannot nest conditions")
            if self.op in (ConditionOp.IN, ConditionOp.NOT_IN) and not isinstance(
                self.val, list
            ):
                raise ValueError(f"Condition '{self.op.value}' requires a list value")
        elif self.op == ConditionOp.NOT:
            if len(self.conditions) != 1:
                raise ValueError("Condition 'not' requires exactly one condition")
        elif len(self.conditions) < 2:
            raise ValueError(f"Condition '{self.op.value}' requires two or more conditions")
        return self

    def variables(self) -> list[str]:
        """Variables referenced anywhere in the tree, in first-seen order."""
        if self.var is not None:
            return [self.var]
        seen: list[str] = []
        for child in self.conditions:
            for var in child.variables():
                if var not in seen:
                    seen.append(var)
        return seen


Condition.model_rebuild()


class ValueSource(BaseModel):
    """Where a binding takes its value from."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["input", "literal"] = "input"
    input_id: Optional[str] = None
    value: Any = None


class FilterBinding(BaseModel):
    """Links one input control to one filtered block variable."""

    model_config = ConfigDict(frozen=True)

    source_input_id: str
    target_block_id: str
    target_variable: str
    operator: FilterOperator
    value_source: ValueSource


class InputControl(BaseModel):
    """An input control as the runtime sees it."""

    input_id: str
    input_type: str
    filter_var: str
    operator: FilterOperator
    default: Any = None
    options: Optional[list[Any]] = None


class VisibilityRule(BaseModel):
    """Shows ``target_block_id`` only while ``condition`` holds."""

    target_block_id: str
    condition: Condition
    source_input_ids: list[str] = Field(default_factory=list)


class PageFilterSpec(BaseModel):
    """Everything the client runtime needs for one page."""

    page: str = Field(..., description="Page slug")
    inputs: list[InputControl] = Field(default_factory=list)
    bindings: list[FilterBinding] = Field(default_factory=list)
    visibility: list[VisibilityRule] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.inputs or self.bindings or self.visibility)

    @property
    def filter_vars(self) -> list[str]:
        """Distinct input variables in page order."""
        seen: list[str] = []
        for control in self.inputs:
            if control.filter_var not in seen:
                seen.append(control.filter_var)
        return seen

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(indent=indent)

    @classmethod
    def from_json(cls, payload: str) -> "PageFilterSpec":
        return cls.model_validate_json(payload)
