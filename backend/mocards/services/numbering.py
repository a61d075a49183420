"""Batch numbers, control numbers and passcodes."""
import re
import secrets
import time

PASSCODE_DIGITS = 4
LOCATION_CODE_LENGTH = 3

_LOCATION_CODE_RE = re.compile(r"^[A-Z]{3}$")
_INCOMPLETE_PASSCODE_RE = re.compile(r"^\d{4}$")
_COMPLETE_PASSCODE_RE = re.compile(r"^[A-Z]{3}\d{4}$")


def generate_batch_number(prefix: str, now: float | None = None) -> str:
    """Build a batch number from a millisecond time seed and a random suffix.

    Example: ``MOB-07182345-3FA9``. Uniqueness is probabilistic; callers
    retry on a unique-constraint collision.
    """
    if now is None:
        now = time.time()
    seed = int(now * 1000) % 10**8
    return f"{prefix}-{seed:08d}-{secrets.token_hex(2).upper()}"


def batch_seed(batch_number: str) -> str:
    """Strip the prefix from a batch number (``MOB-07182345-3FA9`` -> ``07182345-3FA9``)."""
    _, _, seed = batch_number.partition("-")
    return seed or batch_number


def control_number_for(prefix: str, batch_number: str, position: int) -> str:
    """Deterministic control number for the card at ``position`` (1-based) in a batch."""
    return f"{prefix}-{batch_seed(batch_number)}-{position:05d}"


def generate_incomplete_passcode() -> str:
    """Uniform draw over 0000-9999."""
    return f"{secrets.randbelow(10 ** PASSCODE_DIGITS):0{PASSCODE_DIGITS}d}"


def normalize_location_code(location_code: str) -> str | None:
    """Upper-case and validate a location code; returns None if invalid."""
    if location_code is None:
        return None
    code = location_code.strip().upper()
    if not _LOCATION_CODE_RE.match(code):
        return None
    return code


def is_incomplete_passcode(passcode: str) -> bool:
    return bool(passcode) and bool(_INCOMPLETE_PASSCODE_RE.match(passcode))


def is_complete_passcode(passcode: str) -> bool:
    return bool(passcode) and bool(_COMPLETE_PASSCODE_RE.match(passcode))


def complete_passcode(location_code: str, incomplete_passcode: str) -> str:
    """Prefix a 4-digit passcode with its location code (``CAV`` + ``1234``)."""
    return f"{location_code}{incomplete_passcode}"
