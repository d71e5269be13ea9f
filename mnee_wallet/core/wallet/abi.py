"""
Minimal ERC-20 ABI encoding and unit conversion.

Only the fixed token surface is supported, so selectors are hard-coded
instead of hashed at runtime.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Dict, Sequence, Tuple

from eth_utils import is_hex_address

from .errors import InvalidAmountError


BALANCE_OF = "balanceOf(address)"
TRANSFER = "transfer(address,uint256)"
DECIMALS = "decimals()"
SYMBOL = "symbol()"
NAME = "name()"

# signature -> (selector, argument types, return type)
ERC20_FUNCTIONS: Dict[str, Tuple[str, Tuple[str, ...], str]] = {
    BALANCE_OF: ("0x70a08231", ("address",), "uint256"),
    TRANSFER: ("0xa9059cbb", ("address", "uint256"), "bool"),
    DECIMALS: ("0x313ce567", (), "uint8"),
    SYMBOL: ("0x95d89b41", (), "string"),
    NAME: ("0x06fdde03", (), "string"),
}

MAX_UINT256 = 2**256 - 1

_PLAIN_DECIMAL_RE = re.compile(r"^(\d+\.?\d*|\.\d+)$")


def is_address(value: Any) -> bool:
    """``0x``-prefixed 20-byte hex address, any letter case."""
    if not isinstance(value, str):
        return False
    value = value.strip()
    return value.startswith("0x") and is_hex_address(value)


def _encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte hex string (without 0x prefix)."""
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"uint256 out of range: {value}")
    return format(value, "064x")


def _encode_address(address: str) -> str:
    """Encode an address as a 32-byte hex string (without 0x prefix)."""
    if not is_address(address):
        raise ValueError(f"Invalid address: {address}")
    return address.strip().lower()[2:].zfill(64)


_ENCODERS = {
    "address": _encode_address,
    "uint256": _encode_uint256,
}


def encode_call(signature: str, args: Sequence[Any] = ()) -> str:
    """Build calldata for one of the supported token functions."""
    if signature not in ERC20_FUNCTIONS:
        raise ValueError(f"Unsupported function signature: {signature}")

    selector, arg_types, _ = ERC20_FUNCTIONS[signature]
    if len(args) != len(arg_types):
        raise ValueError(f"{signature} expects {len(arg_types)} argument(s), got {len(args)}")

    return selector + "".join(_ENCODERS[t](a) for t, a in zip(arg_types, args))


def _words(data: str) -> bytes:
    raw = data[2:] if data.startswith("0x") else data
    if not raw:
        raise ValueError("Empty call result (contract missing or call reverted)")
    return bytes.fromhex(raw)


def decode_uint(data: str) -> int:
    payload = _words(data)
    return int.from_bytes(payload[:32], "big")


def decode_bool(data: str) -> bool:
    return decode_uint(data) != 0


def decode_string(data: str) -> str:
    """Decode a dynamic ABI string, falling back to bytes32 for legacy tokens."""
    payload = _words(data)
    if len(payload) == 32:
        return payload.rstrip(b"\x00").decode("utf-8", errors="replace")

    offset = int.from_bytes(payload[:32], "big")
    length = int.from_bytes(payload[offset:offset + 32], "big")
    start = offset + 32
    if start + length > len(payload):
        raise ValueError("Malformed ABI string")
    return payload[start:start + length].decode("utf-8", errors="replace")


_DECODERS = {
    "uint256": decode_uint,
    "uint8": decode_uint,
    "bool": decode_bool,
    "string": decode_string,
}


def decode_result(signature: str, data: str) -> Any:
    _, _, return_type = ERC20_FUNCTIONS[signature]
    return _DECODERS[return_type](data)


def parse_amount(amount: Any) -> Decimal:
    """
    Validate a human-readable amount without knowing the token decimals.

    Rejects non-numeric, non-finite, negative, zero and exponent-notation input.
    """
    text = str(amount).strip() if amount is not None else ""
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise InvalidAmountError(f"Amount is not numeric: {amount!r}", amount=amount) from None

    if not value.is_finite():
        raise InvalidAmountError(f"Amount is not finite: {amount!r}", amount=amount)
    if value < 0:
        raise InvalidAmountError(f"Amount must not be negative: {amount!r}", amount=amount)
    if value == 0:
        raise InvalidAmountError("Amount must be greater than zero", amount=amount)
    if not _PLAIN_DECIMAL_RE.fullmatch(text):
        raise InvalidAmountError(f"Amount must be a plain decimal number: {amount!r}", amount=amount)
    return value


def parse_units(amount: Any, decimals: int) -> int:
    """
    Convert a human-readable amount to smallest units.

    Works on the decimal digits directly so no precision is lost, however
    many digits the amount has.
    """
    value = parse_amount(amount)
    _, digits, exponent = value.as_tuple()
    coefficient = int("".join(map(str, digits)))

    # Trailing zeros beyond the token's places are accepted ("1.500" at 2 places)
    while exponent + decimals < 0 and coefficient % 10 == 0:
        coefficient //= 10
        exponent += 1
    if exponent + decimals < 0:
        raise InvalidAmountError(
            f"Amount {amount!r} has more than {decimals} decimal places",
            amount=amount,
        )

    units = coefficient * 10 ** (exponent + decimals)
    if units > MAX_UINT256:
        raise InvalidAmountError(f"Amount {amount!r} is too large", amount=amount)
    return units


def format_units(raw: int, decimals: int, places: int) -> str:
    """Scale ``raw`` smallest units down by ``decimals`` and render with fixed ``places``."""
    with localcontext() as ctx:
        ctx.prec = 100
        value = Decimal(int(raw)).scaleb(-decimals)
        quantized = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return f"{quantized:f}"

