from typing import Any

from storefront.errors import ValidationError


def require_quantity(v: Any, name: str = "qty") -> int:
    # bool is an int subclass, "true" is not a quantity
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValidationError(f"{name} must be an integer")
    if v < 0:
        raise ValidationError(f"{name} must be >= 0")
    return v
