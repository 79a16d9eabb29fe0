"""Form and field schema types.

Each field kind is its own frozen dataclass carrying only the attributes
meaningful to it. Invalid combinations are rejected at construction with
SchemaError, so a constructed schema always satisfies the structural
invariants; labels and form names may still be blank while being edited.
"""

import time
from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any, ClassVar

from form_engine.core.errors import SchemaError


class FieldKind(Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"
    DATE = "date"
    DERIVED = "derived"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, kw_only=True)
class FieldSchema:
    """Attributes shared by every field kind"""

    KINDS: ClassVar[tuple[FieldKind, ...]] = ()

    id: str
    label: str = ""
    required: bool = False
    placeholder: str | None = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise SchemaError("Field id must be a non-empty string")
        if not isinstance(self.label, str):
            raise SchemaError(f"Field '{self.id}': label must be a string")
        if not isinstance(self.required, bool):
            raise SchemaError(f"Field '{self.id}': required must be a boolean")
        if self.kind not in self.KINDS:
            raise SchemaError(
                f"Field '{self.id}': kind {self.kind!r} is not valid for {type(self).__name__}"
            )

    @property
    def kind(self) -> FieldKind:
        return self.KINDS[0]

    @property
    def is_derived(self) -> bool:
        return False

    def _check_default(self, accepted: bool, expected: str):
        if self.default_value is not None and not accepted:
            raise SchemaError(
                f"Field '{self.id}': defaultValue must be {expected}, got {self.default_value!r}"
            )

    def to_dict(self) -> dict:
        """Convert to the persisted dictionary form"""
        data = {
            "id": self.id,
            "label": self.label,
            "type": self.kind.value,
            "required": self.required,
        }
        if self.placeholder is not None:
            data["placeholder"] = self.placeholder
        default = getattr(self, "default_value", None)
        if default is not None:
            data["defaultValue"] = default
        return data


@dataclass(frozen=True, kw_only=True)
class TextField(FieldSchema):
    """Single-line text or multi-line textarea"""

    KINDS: ClassVar[tuple[FieldKind, ...]] = (FieldKind.TEXT, FieldKind.TEXTAREA)

    # Shadows the base property; text fields choose their own kind
    kind: FieldKind = FieldKind.TEXT
    default_value: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    def __post_init__(self):
        super().__post_init__()
        self._check_default(isinstance(self.default_value, str), "a string")
        for name in ("min_length", "max_length"):
            bound = getattr(self, name)
            if bound is None:
                continue
            if not isinstance(bound, int) or isinstance(bound, bool) or bound < 0:
                raise SchemaError(f"Field '{self.id}': {name} must be a non-negative integer")
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise SchemaError(
                f"Field '{self.id}': minLength ({self.min_length}) exceeds maxLength ({self.max_length})"
            )
        if self.pattern is not None and not isinstance(self.pattern, str):
            raise SchemaError(f"Field '{self.id}': pattern must be a string")

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.min_length is not None:
            data["minLength"] = self.min_length
        if self.max_length is not None:
            data["maxLength"] = self.max_length
        if self.pattern is not None:
            data["pattern"] = self.pattern
        return data


@dataclass(frozen=True, kw_only=True)
class NumberField(FieldSchema):
    KINDS: ClassVar[tuple[FieldKind, ...]] = (FieldKind.NUMBER,)

    default_value: int | float | None = None

    def __post_init__(self):
        super().__post_init__()
        self._check_default(_is_number(self.default_value), "a number")


@dataclass(frozen=True, kw_only=True)
class EmailField(FieldSchema):
    KINDS: ClassVar[tuple[FieldKind, ...]] = (FieldKind.EMAIL,)

    default_value: str | None = None

    def __post_init__(self):
        super().__post_init__()
        self._check_default(isinstance(self.default_value, str), "a string")


@dataclass(frozen=True, kw_only=True)
class DateField(FieldSchema):
    KINDS: ClassVar[tuple[FieldKind, ...]] = (FieldKind.DATE,)

    default_value: str | None = None

    def __post_init__(self):
        super().__post_init__()
        self._check_default(isinstance(self.default_value, str), "a string")


@dataclass(frozen=True, kw_only=True)
class CheckboxField(FieldSchema):
    KINDS: ClassVar[tuple[FieldKind, ...]] = (FieldKind.CHECKBOX,)

    default_value: bool | None = None

    def __post_init__(self):
        super().__post_init__()
        self._check_default(isinstance(self.default_value, bool), "a boolean")


@dataclass(frozen=True, kw_only=True)
class ChoiceField(FieldSchema):
    """Radio group or select box over a fixed option list"""

    KINDS: ClassVar[tuple[FieldKind, ...]] = (FieldKind.RADIO, FieldKind.SELECT)

    kind: FieldKind = FieldKind.SELECT
    options: tuple[str, ...] = ()
    default_value: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "options", tuple(self.options))
        super().__post_init__()
        if not self.options:
            raise SchemaError(f"Field '{self.id}': {self.kind.value} requires at least one option")
        seen = set()
        for option in self.options:
            if not isinstance(option, str) or not option.strip():
                raise SchemaError(f"Field '{self.id}': options must be non-blank strings")
            if option in seen:
                raise SchemaError(f"Field '{self.id}': duplicate option '{option}'")
            seen.add(option)
        self._check_default(self.default_value in self.options, "one of the options")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["options"] = list(self.options)
        return data


@dataclass(frozen=True, kw_only=True)
class DerivedField(FieldSchema):
    """Read-only field computed from its parents by a formula"""

    KINDS: ClassVar[tuple[FieldKind, ...]] = (FieldKind.DERIVED,)

    parent_field_ids: tuple[str, ...] = ()
    formula: str = ""

    def __post_init__(self):
        parents = []
        for parent_id in self.parent_field_ids:
            if parent_id not in parents:
                parents.append(parent_id)
        object.__setattr__(self, "parent_field_ids", tuple(parents))
        super().__post_init__()

        if not parents:
            raise SchemaError(f"Derived field '{self.id}' requires at least one parent field")
        for parent_id in parents:
            if not isinstance(parent_id, str) or not parent_id.strip():
                raise SchemaError(f"Derived field '{self.id}': parent ids must be non-empty strings")
        if self.id in parents:
            raise SchemaError(f"Derived field '{self.id}' cannot be its own parent")
        if not isinstance(self.formula, str) or not self.formula.strip():
            raise SchemaError(f"Derived field '{self.id}' requires a formula")

    @property
    def is_derived(self) -> bool:
        return True

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["isDerived"] = True
        data["parentFieldIds"] = list(self.parent_field_ids)
        data["formula"] = self.formula
        return data


FIELD_TYPES: dict[FieldKind, type[FieldSchema]] = {
    FieldKind.TEXT: TextField,
    FieldKind.TEXTAREA: TextField,
    FieldKind.NUMBER: NumberField,
    FieldKind.EMAIL: EmailField,
    FieldKind.CHECKBOX: CheckboxField,
    FieldKind.RADIO: ChoiceField,
    FieldKind.SELECT: ChoiceField,
    FieldKind.DATE: DateField,
    FieldKind.DERIVED: DerivedField,
}

# Persisted key -> constructor argument, per field class
_COMMON_KEYS = {"id": "id", "label": "label", "required": "required", "placeholder": "placeholder"}
_EXTRA_KEYS: dict[type[FieldSchema], dict[str, str]] = {
    TextField: {
        "defaultValue": "default_value",
        "minLength": "min_length",
        "maxLength": "max_length",
        "pattern": "pattern",
    },
    NumberField: {"defaultValue": "default_value"},
    EmailField: {"defaultValue": "default_value"},
    DateField: {"defaultValue": "default_value"},
    CheckboxField: {"defaultValue": "default_value"},
    ChoiceField: {"defaultValue": "default_value", "options": "options"},
    DerivedField: {"parentFieldIds": "parent_field_ids", "formula": "formula"},
}


def field_from_dict(data: dict) -> FieldSchema:
    """Build a field variant from its persisted dictionary form.

    Keys that are null are treated as absent. Keys that are not meaningful
    for the declared type raise SchemaError.
    """
    if not isinstance(data, dict):
        raise SchemaError(f"Field definition must be an object, got {type(data).__name__}")

    raw_type = data.get("type")
    try:
        kind = FieldKind(raw_type)
    except ValueError:
        valid = ", ".join(k.value for k in FieldKind)
        raise SchemaError(f"Unknown field type '{raw_type}' (expected one of: {valid})") from None

    cls = FIELD_TYPES[kind]
    mapping = {**_COMMON_KEYS, **_EXTRA_KEYS[cls]}
    kwargs: dict[str, Any] = {}
    if cls in (TextField, ChoiceField):
        kwargs["kind"] = kind

    field_id = data.get("id", "?")
    for key, value in data.items():
        if key == "type" or value is None:
            continue
        if key == "isDerived":
            if value is not (kind is FieldKind.DERIVED):
                raise SchemaError(
                    f"Field '{field_id}': isDerived={value!r} is not valid for type '{kind.value}'"
                )
            continue
        if key not in mapping:
            raise SchemaError(f"Field '{field_id}': '{key}' is not valid for type '{kind.value}'")
        kwargs[mapping[key]] = value

    for key, name in (("parent_field_ids", "parentFieldIds"), ("options", "options")):
        if key in kwargs:
            if not isinstance(kwargs[key], (list, tuple)):
                raise SchemaError(f"Field '{field_id}': '{name}' must be a list")
            kwargs[key] = tuple(kwargs[key])
    if "id" not in kwargs:
        raise SchemaError("Field definition is missing 'id'")
    return cls(**kwargs)


@dataclass(frozen=True)
class FormSchema:
    """Ordered field definitions plus form metadata.

    Field order is display order and the tie-break order for evaluating
    independent derived fields.
    """

    id: str
    name: str
    fields: tuple[FieldSchema, ...] = ()
    created_at: int = dataclass_field(default_factory=now_millis)

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        seen = set()
        for f in self.fields:
            if not isinstance(f, FieldSchema):
                raise SchemaError(f"Form '{self.id}': fields must be FieldSchema instances")
            if f.id in seen:
                raise SchemaError(f"Form '{self.id}': duplicate field id '{f.id}'")
            seen.add(f.id)

    @property
    def field_ids(self) -> list[str]:
        return [f.id for f in self.fields]

    @property
    def derived_fields(self) -> list[DerivedField]:
        return [f for f in self.fields if f.is_derived]

    def get_field(self, field_id: str) -> FieldSchema | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def index_of(self, field_id: str) -> int:
        for i, f in enumerate(self.fields):
            if f.id == field_id:
                return i
        raise KeyError(field_id)

    def to_dict(self) -> dict:
        """Convert to the persisted dictionary form"""
        return {
            "id": self.id,
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FormSchema":
        if not isinstance(data, dict) or "id" not in data:
            raise SchemaError("Form definition must be an object with an 'id'")
        fields = tuple(field_from_dict(f) for f in data.get("fields", []))
        kwargs = {}
        if data.get("createdAt") is not None:
            kwargs["created_at"] = data["createdAt"]
        return cls(id=data["id"], name=data.get("name", ""), fields=fields, **kwargs)
