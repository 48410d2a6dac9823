import re

from eth_hash.auto import keccak
from eth_utils import decode_hex, is_0x_prefixed

from eip712_errors import EncodingError

WORD_SIZE = 32

_INT_RE = re.compile(r"^(u?int)([0-9]*)$")
_BYTES_RE = re.compile(r"^bytes([0-9]+)$")


# ---------- type parsing ----------

def _int_spec(type_name: str):
    """Return (signed, bits) for int/uint types, None for anything else."""
    m = _INT_RE.match(type_name)
    if not m:
        return None
    bits = int(m.group(2)) if m.group(2) else 256
    if bits < 8 or bits > 256 or bits % 8:
        raise EncodingError(f"unsupported integer type {type_name!r}")
    return m.group(1) == "int", bits


def _fixed_bytes_size(type_name: str):
    m = _BYTES_RE.match(type_name)
    if not m:
        return None
    size = int(m.group(1))
    if size < 1 or size > WORD_SIZE:
        raise EncodingError(f"unsupported bytes type {type_name!r}")
    return size


def check_type(type_name: str) -> str:
    """Raise EncodingError unless type_name encodes to a single 32-byte word."""
    if type_name in ("address", "bool", "string", "bytes"):
        return type_name
    if _int_spec(type_name) is None and _fixed_bytes_size(type_name) is None:
        raise EncodingError(f"unsupported type {type_name!r}")
    return type_name


# ---------- value coercion ----------

def as_int(value, type_name: str = "uint256") -> int:
    # int, decimal string or 0x-hex string
    if isinstance(value, bool):
        raise EncodingError(f"{type_name}: bool is not an integer value")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 16) if is_0x_prefixed(text) else int(text, 10)
        except ValueError as exc:
            raise EncodingError(f"{type_name}: cannot parse {value!r} as an integer") from exc
    raise EncodingError(f"{type_name}: expected int or numeric string, got {type(value).__name__}")


def as_bytes(value, type_name: str = "bytes") -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        if not is_0x_prefixed(value):
            raise EncodingError(f"{type_name}: hex string must be 0x-prefixed, got {value!r}")
        try:
            return decode_hex(value)
        except ValueError as exc:
            raise EncodingError(f"{type_name}: invalid hex {value!r}") from exc
    raise EncodingError(f"{type_name}: expected bytes or hex string, got {type(value).__name__}")


def address_bytes(value) -> bytes:
    raw = as_bytes(value, "address")
    if len(raw) != 20:
        raise EncodingError(f"address must be 20 bytes, got {len(raw)}")
    return raw


# ---------- fixed-width words ----------

def encode_word(type_name: str, value) -> bytes:
    """
    Encode one value as the 32-byte word EIP-712 `encodeData` uses for it.

    Integers are big-endian and left-padded (signed ones sign-extended),
    addresses sit in the low 20 bytes, bytesN is right-padded, and the
    dynamic `string`/`bytes` types are replaced by their keccak256.
    Out-of-range values raise EncodingError; nothing is truncated.
    """
    if type_name == "address":
        return b"\x00" * 12 + address_bytes(value)

    if type_name == "bool":
        if not isinstance(value, int) or value not in (0, 1):
            raise EncodingError(f"bool: expected True/False/0/1, got {value!r}")
        return int(value).to_bytes(WORD_SIZE, "big")

    if type_name == "string":
        if not isinstance(value, str):
            raise EncodingError(f"string: expected str, got {type(value).__name__}")
        return keccak(value.encode("utf-8"))

    if type_name == "bytes":
        return keccak(as_bytes(value))

    spec = _int_spec(type_name)
    if spec is not None:
        signed, bits = spec
        n = as_int(value, type_name)
        if signed:
            lo, hi = -(1 << (bits - 1)), 1 << (bits - 1)
        else:
            lo, hi = 0, 1 << bits
        if not lo <= n < hi:
            raise EncodingError(f"{type_name}: value {n} out of range")
        # two's complement for negatives
        return (n % (1 << 256)).to_bytes(WORD_SIZE, "big")

    size = _fixed_bytes_size(type_name)
    if size is not None:
        raw = as_bytes(value, type_name)
        if len(raw) != size:
            raise EncodingError(f"{type_name}: expected {size} bytes, got {len(raw)}")
        return raw.ljust(WORD_SIZE, b"\x00")

    raise EncodingError(f"unsupported type {type_name!r}")


def u256(x) -> bytes:
    return encode_word("uint256", x)


def addr(a) -> bytes:
    return encode_word("address", a)


def b32(x) -> bytes:
    return encode_word("bytes32", x)


# ---------- tightly packed (abi.encodePacked) ----------

def _pack(type_name: str, value) -> bytes:
    if type_name == "address":
        return address_bytes(value)
    if type_name == "bool":
        return encode_word("bool", value)[-1:]
    if type_name == "string":
        if not isinstance(value, str):
            raise EncodingError(f"string: expected str, got {type(value).__name__}")
        return value.encode("utf-8")
    if type_name == "bytes":
        return as_bytes(value)

    spec = _int_spec(type_name)
    if spec is not None:
        return encode_word(type_name, value)[-(spec[1] // 8):]

    size = _fixed_bytes_size(type_name)
    if size is not None:
        return encode_word(type_name, value)[:size]

    raise EncodingError(f"unsupported type {type_name!r}")


def encode_packed(types, values) -> bytes:
    if len(types) != len(values):
        raise EncodingError(f"wrong number of values; expected {len(types)}, got {len(values)}")
    return b"".join(_pack(t, v) for t, v in zip(types, values))
