from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any


# Maximum amount that fits Numeric(15, 2)
MAX_PAYMENT_AMOUNT = Decimal("9999999999999.99")

# Largest id a 64-bit signed INTEGER primary key can hold
MAX_RECORD_ID = 2**63 - 1

PASSWORD_MIN_LENGTH = 8
# bcrypt only reads the first 72 bytes of its input
PASSWORD_MAX_BYTES = 72

REGISTRATION_PATTERNS = {
    "username": re.compile(r"[a-zA-Z0-9_-]{3,20}", re.ASCII),   # Alphanumeric, underscore, hyphen
    "full_name": re.compile(r"[a-zA-Z\s]{3,50}", re.ASCII),      # Only letters and spaces
    "id_number": re.compile(r"[0-9]{6,13}", re.ASCII),           # 6-13 digits
    "account_number": re.compile(r"[0-9]{6,20}", re.ASCII),      # 6-20 digits
}

PAYMENT_PATTERNS = {
    "amount": re.compile(r"\d+(\.\d{1,2})?", re.ASCII),
    "currency": re.compile(r"[A-Z]{3}", re.ASCII),
    "payee_account": re.compile(r"[A-Z0-9]{5,34}", re.ASCII),
    "swift_code": re.compile(r"[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?", re.ASCII),  # 8 or 11 char BIC
}


class ValidationError(ValueError):
    """400-level input problem."""


def _matches(pattern: re.Pattern, value: Any) -> bool:
    return isinstance(value, str) and pattern.fullmatch(value) is not None


def sanitize_payload(payload: Any) -> dict:
    """
    Strip query-operator keys from an untrusted JSON body.

    Keys starting with "$" or containing "." are dropped at every depth,
    so nothing shaped like a query operator reaches the storage layer.
    A non-object body becomes an empty dict.
    """
    if not isinstance(payload, dict):
        return {}
    return _sanitize_value(payload)


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: _sanitize_value(item)
            for key, item in value.items()
            if isinstance(key, str) and not key.startswith("$") and "." not in key
        }
    if isinstance(value, list):
        return [_sanitize_value(item) for item in value]
    return value


def is_strong_password(password: Any) -> bool:
    """
    Password policy: at least 8 characters with one lowercase letter,
    one uppercase letter and one digit. Symbols are not required.
    """
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        return False
    return (
        re.search(r"[a-z]", password) is not None
        and re.search(r"[A-Z]", password) is not None
        and re.search(r"[0-9]", password) is not None
    )


def validate_registration(
    username: Any,
    full_name: Any,
    id_number: Any,
    account_number: Any,
    password: Any,
) -> str | None:
    """Return the first failing reason for a registration, or None."""
    if not _matches(REGISTRATION_PATTERNS["username"], username):
        return "Invalid username"
    if not _matches(REGISTRATION_PATTERNS["full_name"], full_name):
        return "Invalid full name"
    if not _matches(REGISTRATION_PATTERNS["id_number"], id_number):
        return "Invalid ID number"
    if not _matches(REGISTRATION_PATTERNS["account_number"], account_number):
        return "Invalid account number"
    if not is_strong_password(password):
        return "Password too weak (must include uppercase, lowercase, number)"
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return "Password too long (max 72 bytes)"
    return None


def validate_payment(
    amount: Any,
    currency: Any,
    payee_account: Any,
    swift_code: Any,
) -> str | None:
    """Return the first failing reason for a payment, or None."""
    if not _matches(PAYMENT_PATTERNS["amount"], amount):
        return "Invalid amount"
    if not _matches(PAYMENT_PATTERNS["currency"], currency):
        return "Invalid currency"
    if not _matches(PAYMENT_PATTERNS["payee_account"], payee_account):
        return "Invalid payee account"
    if not _matches(PAYMENT_PATTERNS["swift_code"], swift_code):
        return "Invalid SWIFT code"
    return None


def parse_amount(amount: str) -> Decimal:
    """
    Convert a pattern-checked amount string to Decimal.

    Zero and values beyond MAX_PAYMENT_AMOUNT are rejected.
    """
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError):
        raise ValidationError("Invalid amount")
    if value <= 0 or value > MAX_PAYMENT_AMOUNT:
        raise ValidationError("Invalid amount")
    return value


def parse_payment_ids(raw: Any) -> list[int]:
    """
    Normalize the "ids" array of a batch request.

    Accepts positive integers or digit strings. Duplicates are collapsed,
    first-seen order kept. Raises ValidationError("Invalid IDs") for an
    empty/non-list value or any malformed entry.
    """
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Invalid IDs")

    ids: list[int] = []
    for item in raw:
        # bool is an int subclass; never a valid id
        if isinstance(item, bool):
            raise ValidationError("Invalid IDs")
        if isinstance(item, int):
            value = item
        elif isinstance(item, str) and re.fullmatch(r"[0-9]+", item.strip()):
            value = int(item.strip())
        else:
            raise ValidationError("Invalid IDs")
        if value <= 0:
            raise ValidationError("Invalid IDs")
        if value not in ids:
            ids.append(value)
    return ids
