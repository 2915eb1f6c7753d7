import string
from typing import Annotated, Any

from pydantic import BeforeValidator

_HEX_DIGITS = frozenset(string.hexdigits)
# Quantities are at most 256 bits wide
_MAX_HEX_DIGITS = 64


def parse_hex_int(value: str) -> int:
    """
    Decode a JSON-RPC hex quantity such as "0x1b4" into an integer.

    The "0x" prefix is optional and digits are case-insensitive. Signs,
    whitespace and underscores are rejected even though int() would accept
    some of them.

    Args:
        value (str): The hex string returned by the node.

    Returns:
        int: The decoded, non-negative integer.

    Raises:
        ValueError: If the value is not a string, is not valid hex or is
                    longer than 64 digits.
    """
    if not isinstance(value, str):
        raise ValueError(f"expected a hex string, got {type(value).__name__}")

    digits = value[2:] if value[:2].lower() == "0x" else value
    if not digits or not set(digits) <= _HEX_DIGITS:
        raise ValueError(f"invalid hex quantity: {value!r}")
    if len(digits) > _MAX_HEX_DIGITS:
        raise ValueError(
            f"hex quantity has {len(digits)} digits, at most {_MAX_HEX_DIGITS} allowed",
        )
    return int(digits, 16)


def _hex_or_int(value: Any) -> Any:
    return parse_hex_int(value) if isinstance(value, str) else value


HexInt = Annotated[int, BeforeValidator(_hex_or_int)]
