from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable


# Maximum price: 9,999,999.99
# Matches Numeric(12, 2) storage and rejects nonsensical prices
MAX_PRICE = Decimal("9999999.99")
CENTS = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ConsistencyError(ValueError):
    """409-level referential rule violation (e.g., deleting a referenced supplier)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """404-level missing document."""


def round2(value: Decimal) -> Decimal:
    """Currency rounding: two places, half-up."""
    try:
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits to hold two decimal places
        raise ValidationError(f"amount {value} is out of range")


def to_decimal(value: Any, name: str) -> Decimal:
    """
    Coerce a JSON number (or numeric string) to Decimal.

    Floats go through str() so 10.1 stays 10.1 instead of its binary expansion.
    NaN and infinities are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be a number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{name} must be a number")
    else:
        raise ValidationError(f"{name} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    return result


def to_money(value: Any, name: str) -> Decimal:
    amount = round2(to_decimal(value, name))
    if amount > MAX_PRICE:
        raise ValidationError(f"{name} cannot exceed {MAX_PRICE}")
    return amount


def to_int(value: Any, name: str) -> int:
    """Strict integer coercion: rejects floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def to_text(value: Any, name: str) -> str:
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ValidationError(f"{name} must be a string")
    return str(value).strip()


def normalize_barcode(value: Any) -> str | None:
    """Barcodes are numeric; blank means "no barcode"."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("barcode must be numeric")
    if isinstance(value, int):
        value = str(value)
    if not isinstance(value, str):
        raise ValidationError("barcode must be numeric")
    stripped = value.strip()
    if not stripped:
        return None
    if not stripped.isdigit():
        raise ValidationError("barcode must be numeric")
    return stripped


@dataclass(frozen=True)
class DocumentPolicy:
    """
    Central policy layer for incoming documents:
    - coercers: writable field -> coercion function (security boundary)
    - required_on_create: fields required for POST
    - nullable: fields that may be explicitly set to null
    - max_lengths: upper bound for text fields
    """
    coercers: dict[str, Callable[[Any, str], Any]]
    required_on_create: set[str] = field(default_factory=set)
    nullable: set[str] = field(default_factory=set)
    max_lengths: dict[str, int] = field(default_factory=dict)


def validate_payload(*, payload: Any, policy: DocumentPolicy, partial: bool) -> dict:
    """
    Validates + normalizes incoming JSON against a DocumentPolicy.
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.coercers:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        if raw is None:
            if k not in policy.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = policy.coercers[k](raw, k)

        if isinstance(val, str):
            if val == "" and k in policy.required_on_create:
                raise ValidationError(f"{k} cannot be blank")
            limit = policy.max_lengths.get(k)
            if limit and len(val) > limit:
                raise ValidationError(f"{k} exceeds max length {limit}")

        patch[k] = val

    return patch


def enforce_rules_product(doc: dict) -> None:
    """
    Business rules over the merged product document (current values + patch).
    Keep these small and centralized.
    """
    purchase = doc.get("purchase_price")
    sale = doc.get("sale_price")
    if purchase is None or purchase <= 0:
        raise ValidationError("purchase_price must be > 0")
    if sale is None or sale <= purchase:
        raise ValidationError("sale_price must be greater than purchase_price")

    stock = doc.get("stock")
    if stock is None or stock < 0:
        raise ValidationError("stock must be >= 0")

    min_stock = doc.get("min_stock")
    if min_stock is not None and min_stock < 0:
        raise ValidationError("min_stock must be >= 0")
