"""Validation helpers shared by the services"""
from typing import Optional

from pydantic import ValidationError

from errors import InvalidInput

MIN_QUANTITY = 1
MAX_QUANTITY = 99


def first_error(exc: ValidationError) -> str:
    """Readable message for the first error of a pydantic ValidationError"""
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    err = errors[0]
    msg = err.get("msg", "Invalid input")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    return f"{loc}: {msg}" if loc else msg


def require_session_id(session_id: Optional[str]) -> str:
    """Session ids are compared with surrounding whitespace stripped; blank ids are rejected"""
    value = str(session_id).strip() if session_id is not None else ""
    if not value:
        raise InvalidInput("Session ID is required")
    return value


def clamp_quantity(quantity: Optional[int]) -> int:
    """Clamp a requested quantity into [1, 99], defaulting to 1"""
    if quantity is None:
        return MIN_QUANTITY
    return max(MIN_QUANTITY, min(MAX_QUANTITY, int(quantity)))


def is_valid_quantity(quantity) -> bool:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        return False
    return MIN_QUANTITY <= quantity <= MAX_QUANTITY
