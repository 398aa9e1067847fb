"""Pydantic models for TableReader configuration and per-row validation results."""
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tablereader.errors.exceptions import ConfigurationError
from tablereader.models.field_spec import FieldSpec
from tablereader.models.policy import (
    BlankRowAction,
    Policy,
    UnknownColumnsAction,
    ValidationFailAction,
)

RECORD_DICT = "dict"
RECORD_LIST = "list"

_RECORD_ALIASES = {
    "dict": RECORD_DICT,
    "hash": RECORD_DICT,
    "list": RECORD_LIST,
    "array": RECORD_LIST,
}


@dataclass
class ValidationFailure:
    """One failed type check within a row.

    `value_index` points into the row's fetched values, which decision
    functions receive alongside the failures and may correct in place.
    """
    field: FieldSpec
    value_index: int
    message: str


class ReaderConfig(BaseModel):
    """Validated options of a TableReader.

    Decision functions are accepted wherever a policy tag is, and are wrapped
    into a Policy so that call sites resolve both the same way.
    """

    fields: List[FieldSpec] = Field(
        ...,
        min_length=1,
        description="Fields to locate in the header and extract from each row"
    )
    record_class: Any = Field(
        default=RECORD_DICT,
        description="'dict', 'list', or a callable receiving the record dict"
    )
    filters: List[Callable[..., Any]] = Field(
        default_factory=list,
        description="Callables applied in order to each name-keyed record"
    )
    static_field_order: bool = Field(
        default=False,
        description="Require fields in the exact declared column order"
    )
    header_row_at: Optional[Tuple[int, int]] = Field(
        default=(1, 10),
        description="Inclusive 1-indexed row range scanned for the header, or None for no header"
    )
    on_unknown_columns: Any = Field(default="use", description="Policy tag or decision function, stored as a Policy")
    on_blank_row: Any = Field(default="next", description="Policy tag or decision function, stored as a Policy")
    on_validation_fail: Any = Field(default="die", description="Policy tag or decision function, stored as a Policy")

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_default=True)

    @field_validator("fields", mode="before")
    @classmethod
    def coerce_fields(cls, v: Any) -> Any:
        """Accept names, dicts and FieldSpec instances in one list."""
        if not isinstance(v, (list, tuple)) or not v:
            raise ValueError("'fields' must be a non-empty list")
        return [FieldSpec.coerce(spec) for spec in v]

    @field_validator("record_class")
    @classmethod
    def validate_record_class(cls, v: Any) -> Any:
        if isinstance(v, str):
            shape = _RECORD_ALIASES.get(v.lower())
            if shape is None:
                raise ValueError(f"record_class must be 'dict', 'list' or a callable, not {v!r}")
            return shape
        if not callable(v):
            raise ValueError(f"record_class must be 'dict', 'list' or a callable, not {v!r}")
        return v

    @field_validator("filters", mode="before")
    @classmethod
    def coerce_filters(cls, v: Any) -> Any:
        if v is None:
            return []
        if callable(v):
            return [v]
        return list(v)

    @field_validator("header_row_at", mode="before")
    @classmethod
    def coerce_header_row_at(cls, v: Any) -> Any:
        """A single row number means exactly that row."""
        if v is None:
            return None
        if isinstance(v, int):
            v = (v, v)
        try:
            start, end = v
        except (TypeError, ValueError):
            start = end = None
        if not isinstance(start, int) or not isinstance(end, int):
            raise ValueError(f"header_row_at must be a row number, a (start, end) pair or None, not {v!r}")
        if start < 1 or end < start:
            raise ValueError(f"header_row_at must be a 1-indexed range with start <= end, not {v!r}")
        return (start, end)

    @field_validator("on_unknown_columns", mode="before")
    @classmethod
    def build_unknown_columns_policy(cls, v: Any) -> Policy:
        return Policy.build("on_unknown_columns", UnknownColumnsAction, v)

    @field_validator("on_blank_row", mode="before")
    @classmethod
    def build_blank_row_policy(cls, v: Any) -> Policy:
        return Policy.build("on_blank_row", BlankRowAction, v)

    @field_validator("on_validation_fail", mode="before")
    @classmethod
    def build_validation_fail_policy(cls, v: Any) -> Policy:
        return Policy.build("on_validation_fail", ValidationFailAction, v)

    @model_validator(mode="after")
    def require_static_order_without_header(self) -> "ReaderConfig":
        if self.header_row_at is None and not self.static_field_order:
            raise ValueError("You must enable 'static_field_order' if there is no header row")
        return self

    def field_by_name(self, name: str) -> FieldSpec:
        """First declared field with this name.

        Raises:
            ConfigurationError: If no field has this name
        """
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise ConfigurationError(f"No field named {name!r}")
