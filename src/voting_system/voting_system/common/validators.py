from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Type, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def require_positive_id(value, field_name: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if v <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return v


def require_decimal_in_range(value, field_name: str, *, upper: Decimal) -> Decimal:
    """Parse a decimal in (0, upper], quantized to 2 places."""
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if not d.is_finite():
        raise ValidationError(f"{field_name} is invalid")
    # Range first: quantize() raises InvalidOperation on huge exponents.
    if d <= 0 or d > upper:
        raise ValidationError(f"{field_name} must be greater than 0 and at most {upper}")
    d = d.quantize(Decimal("0.01"))
    if d <= 0:
        raise ValidationError(f"{field_name} must be greater than 0 and at most {upper}")
    return d


def require_enum(value, enum_cls: Type[E], field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"{field_name} is invalid: {value!r}")
