from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidResponse


def flag(value: Any) -> bool:
    # The form API sends these flags as the strings "true"/"false".
    return value == "true"


@dataclass
class FieldInfo:
    label: str = ""
    code: str = ""
    type: str = ""
    no_label: bool = False
    required: bool = False
    unique: bool = False
    max_value: Any = None
    min_value: Any = None
    max_length: Any = None
    min_length: Any = None
    default_value: Any = None
    default_expression: Any = None
    options: list[str] = field(default_factory=list)
    expression: str = ""
    digit: bool = False  # thousands separator
    protocol: str = ""  # "WEB", "CALL" or "MAIL"
    format: str = ""

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> FieldInfo:
        options = data.get("options")
        if isinstance(options, dict):
            options = list(options)
        return cls(
            label=str(data.get("label") or ""),
            code=str(data.get("code") or ""),
            type=str(data.get("type") or ""),
            no_label=flag(data.get("noLabel")),
            required=flag(data.get("required")),
            unique=flag(data.get("unique")),
            max_value=data.get("maxValue"),
            min_value=data.get("minValue"),
            max_length=data.get("maxLength"),
            min_length=data.get("minLength"),
            default_value=data.get("defaultValue"),
            default_expression=data.get("defaultExpression"),
            options=[str(o) for o in options or []],
            expression=str(data.get("expression") or ""),
            digit=flag(data.get("digit")),
            protocol=str(data.get("protocol") or ""),
            format=str(data.get("format") or ""),
        )


def parse_fields(data: dict[str, Any]) -> dict[str, FieldInfo]:
    properties = data.get("properties")
    if isinstance(properties, dict):
        properties = list(properties.values())
    if not isinstance(properties, list):
        raise InvalidResponse("form response has no 'properties'")

    out: dict[str, FieldInfo] = {}
    for item in properties:
        if not isinstance(item, dict):
            raise InvalidResponse("field property is not an object")
        info = FieldInfo.from_payload(item)
        out[info.code] = info
    return out
