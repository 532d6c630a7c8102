import re
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    field_validator,
    model_validator,
)

FIELD_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class FieldDefinition(BaseModel):
    """
    One entry of an inventory's custom field schema.
    Unknown attributes (placeholder, required, ...) are kept as-is.
    """

    key: str
    label: str
    type: str
    options: Optional[Any] = None
    min: Optional[Any] = None
    max: Optional[Any] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("key", "label", "type", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return str(value if value is not None else "").strip()

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        if not value:
            raise ValueError("field.key is required")
        if not FIELD_KEY_PATTERN.match(value):
            raise ValueError("field.key must be alphanumeric/underscore/dash")
        return value

    @field_validator("label")
    @classmethod
    def _check_label(cls, value: str) -> str:
        if not value:
            raise ValueError("field.label is required")
        return value

    @field_validator("type")
    @classmethod
    def _check_type(cls, value: str) -> str:
        if not value:
            raise ValueError("field.type is required")
        return value

    @model_validator(mode="after")
    def _check_type_rules(self) -> "FieldDefinition":
        if self.type == "select" and not isinstance(self.options, list):
            raise ValueError("field.options must be an array for type=select")
        if self.type == "number":
            if self.min is not None and not _is_number(self.min):
                raise ValueError("field.min must be number")
            if self.max is not None and not _is_number(self.max):
                raise ValueError("field.max must be number")
        return self


def _unique_keys(fields: List[FieldDefinition]) -> List[FieldDefinition]:
    seen = set()
    for f in fields:
        key = f.key.lower()
        if key in seen:
            raise ValueError(f"duplicate field key: {f.key}")
        seen.add(key)
    return fields


FieldList = Annotated[List[FieldDefinition], AfterValidator(_unique_keys)]


class TextElement(BaseModel):
    type: Literal["text"]
    value: StrictStr

    model_config = ConfigDict(extra="allow")


class DateElement(BaseModel):
    type: Literal["date"]
    format: StrictStr  # e.g. "YYYYMMDD"

    model_config = ConfigDict(extra="allow")

    @field_validator("format")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("date.format is required")
        return value


class SeqElement(BaseModel):
    type: Literal["seq"]
    pad: Optional[Any] = None
    scope: Optional[Literal["global", "inventory"]] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("pad")
    @classmethod
    def _check_pad(cls, value: Any) -> Any:
        if value is None:
            return value
        if not _is_number(value) or value < 0:
            raise ValueError("seq.pad must be >=0")
        return value


class FieldElement(BaseModel):
    type: Literal["field"]
    key: StrictStr  # must name a key of the inventory's field schema

    model_config = ConfigDict(extra="allow")

    @field_validator("key")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("field.key is required for element.type=field")
        return value


IdElement = Annotated[
    Union[TextElement, DateElement, SeqElement, FieldElement],
    Field(discriminator="type"),
]


class CustomIdFormat(BaseModel):
    """
    Template for synthesising human-readable item identifiers.
    """

    separator: Optional[StrictStr] = None
    enabled: Optional[StrictBool] = None
    elements: List[IdElement]

    model_config = ConfigDict(extra="allow")

    def field_keys(self) -> List[str]:
        return [e.key for e in self.elements if isinstance(e, FieldElement)]


def dump_fields(fields: Optional[List[FieldDefinition]]) -> List[dict]:
    return [f.model_dump(exclude_none=True) for f in fields or []]


def dump_custom_id_format(cfg: Optional[CustomIdFormat]) -> Optional[dict]:
    return cfg.model_dump(exclude_none=True) if cfg is not None else None
