"""Generators for order numbers, tracking tokens and recovery coupon codes.

Order numbers are human-facing and only need to be readable and unlikely to
collide within a store. Tracking tokens and recovery codes are capabilities
and come from the ``secrets`` CSPRNG.
"""

import secrets
import string
import time

ORDER_NUMBER_PREFIX = "FX"
RECOVERY_CODE_PREFIX = "RECOVER-"
RECOVERY_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
RECOVERY_CODE_LENGTH = 6
TRACKING_TOKEN_BYTES = 32

_BASE36_DIGITS = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer in uppercase base36."""
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"

    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_order_number(now_ms: int | None = None) -> str:
    """``FX-<base36 timestamp in ms>-<3 random base36 chars>``, uppercase."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36_DIGITS) for _ in range(3))
    return f"{ORDER_NUMBER_PREFIX}-{to_base36(now_ms)}-{suffix}"


def generate_tracking_token() -> str:
    """256 bits of randomness as 64 lowercase hex characters."""
    return secrets.token_hex(TRACKING_TOKEN_BYTES)


def generate_recovery_code() -> str:
    code = "".join(secrets.choice(RECOVERY_CODE_ALPHABET) for _ in range(RECOVERY_CODE_LENGTH))
    return f"{RECOVERY_CODE_PREFIX}{code}"
