import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Iterable, Mapping, NamedTuple, Sequence, Tuple, Union

from eth_hash.auto import keccak

from abi_codec import address_bytes, as_int, check_type, encode_word
from eip712_errors import EncodingError
from sign_core import Signature, eip712_digest, sign_digest

logger = logging.getLogger(__name__)


def hash_type(signature: Union[str, bytes]) -> bytes:
    """keccak256 of a type signature such as "Mail(address to,string contents)".

    The text is not parsed; callers own its well-formedness.
    """
    if isinstance(signature, str):
        signature = signature.encode("utf-8")
    if not signature:
        raise EncodingError("type signature must not be empty")
    return keccak(signature)


# EIP-712 Domain TypeHash (standard per EIP-712)
DOMAIN_TYPE_STR = b"EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
DOMAIN_TYPEHASH = hash_type(DOMAIN_TYPE_STR)


# ---------- domain ----------

@dataclass(frozen=True)
class DomainDescriptor:
    name: str
    version: str
    chain_id: int
    verifying_contract: bytes

    def __post_init__(self):
        for attr in ("name", "version"):
            if not isinstance(getattr(self, attr), str):
                raise EncodingError(f"domain {attr} must be a string")
        chain_id = as_int(self.chain_id, "chainId")
        encode_word("uint256", chain_id)
        object.__setattr__(self, "chain_id", chain_id)
        # accept "0x..." text or raw bytes; always store the 20 raw bytes
        object.__setattr__(self, "verifying_contract", address_bytes(self.verifying_contract))

    @cached_property
    def separator(self) -> bytes:
        return domain_separator(self)


def domain_separator(domain: DomainDescriptor) -> bytes:
    """
    Computes the EIP-712 Domain Separator.
    """
    separator = keccak(
        DOMAIN_TYPEHASH +
        encode_word("string", domain.name) +
        encode_word("string", domain.version) +
        encode_word("uint256", domain.chain_id) +
        encode_word("address", domain.verifying_contract)
    )
    logger.debug("domain separator for %r v%s chain %d: %s",
                 domain.name, domain.version, domain.chain_id, separator.hex())
    return separator


# ---------- struct ----------

class TypedField(NamedTuple):
    name: str
    type: str
    value: Any

    def encode(self) -> bytes:
        try:
            return encode_word(self.type, self.value)
        except EncodingError as exc:
            raise EncodingError(f"field {self.name!r}: {exc}") from exc


def hash_struct(type_signature: Union[str, bytes], fields: Iterable[TypedField]) -> bytes:
    """
    Computes the EIP-712 structHash: keccak(typeHash || word(field_0) || ...).

    Field order must follow the order declared in `type_signature`; a mismatch
    yields a valid-looking but wrong hash. Use StructType to keep them paired.
    """
    # encode everything first so bad values fail before any hashing
    encoded = b"".join(f.encode() for f in fields)
    struct_hash = keccak(hash_type(type_signature) + encoded)
    logger.debug("struct hash %s", struct_hash.hex())
    return struct_hash


class StructType:
    """A named struct with ordered (type, field name) members.

    The canonical signature and the encoding order both come from `members`,
    so they cannot drift apart.
    """

    def __init__(self, name: str, members: Sequence[Tuple[str, str]]):
        if not name:
            raise EncodingError("struct name must not be empty")
        seen = set()
        for type_name, field_name in members:
            check_type(type_name)
            if field_name in seen:
                raise EncodingError(f"{name}: duplicate field {field_name!r}")
            seen.add(field_name)
        self.name = name
        self.members = tuple((t, n) for t, n in members)
        self.signature = name + "(" + ",".join(f"{t} {n}" for t, n in self.members) + ")"
        self.type_hash = hash_type(self.signature)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(n for _, n in self.members)

    def fields(self, values: Mapping[str, Any]) -> Tuple[TypedField, ...]:
        missing = [n for n in self.field_names if n not in values]
        if missing:
            raise EncodingError(f"{self.name}: missing fields {missing}")
        unknown = sorted(set(values) - set(self.field_names))
        if unknown:
            raise EncodingError(f"{self.name}: unknown fields {unknown}")
        return tuple(TypedField(n, t, values[n]) for t, n in self.members)

    def hash(self, values: Mapping[str, Any]) -> bytes:
        return hash_struct(self.signature, self.fields(values))

    def __repr__(self):
        return f"StructType({self.signature!r})"


# ---------- end to end ----------

def typed_data_digest(domain: DomainDescriptor, type_signature: Union[str, bytes],
                      fields: Iterable[TypedField]) -> bytes:
    return eip712_digest(domain.separator, hash_struct(type_signature, fields))


def build_and_sign(domain: DomainDescriptor, type_signature: Union[str, bytes],
                   fields: Iterable[TypedField], privkey_32: bytes) -> Signature:
    digest = typed_data_digest(domain, type_signature, fields)
    return sign_digest(digest, privkey_32)
