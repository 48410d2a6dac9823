from dataclasses import dataclass
from typing import Union

from eth_utils import encode_hex

from abi_codec import address_bytes, as_int
from eip712_struct import DomainDescriptor, StructType
from sign_core import Signature, eip712_digest, sign_digest

# claimToken(uint256 uuid,uint256 amount,address userAddress,uint256 nonce,uint deadline)
# `uint` stays verbatim in the type hash; its value encodes as uint256.
CLAIM_TOKEN = StructType("claimToken", [
    ("uint256", "uuid"),
    ("uint256", "amount"),
    ("address", "userAddress"),
    ("uint256", "nonce"),
    ("uint", "deadline"),
])

Number = Union[int, str]


@dataclass(frozen=True)
class ClaimTokenPermit:
    uuid: Number
    amount: Number
    user_address: Union[str, bytes]
    nonce: Number
    deadline: Number  # unix seconds

    def values(self) -> dict:
        return {
            "uuid": self.uuid,
            "amount": self.amount,
            "userAddress": self.user_address,
            "nonce": self.nonce,
            "deadline": self.deadline,
        }


@dataclass(frozen=True)
class ClaimSignature:
    """Signed claim as handed to the contract caller: decimal strings plus v/r/s."""
    uuid: str
    amount: str
    user_address: str
    nonce: str
    deadline: str
    v: int
    r: str
    s: str

    @classmethod
    def from_signature(cls, permit: ClaimTokenPermit, signature: Signature) -> "ClaimSignature":
        return cls(
            uuid=str(as_int(permit.uuid, "uuid")),
            amount=str(as_int(permit.amount, "amount")),
            user_address=encode_hex(address_bytes(permit.user_address)),
            nonce=str(as_int(permit.nonce, "nonce")),
            deadline=str(as_int(permit.deadline, "deadline")),
            v=signature.v,
            r=encode_hex(signature.r),
            s=encode_hex(signature.s),
        )


def claim_token_digest(domain: DomainDescriptor, permit: ClaimTokenPermit) -> bytes:
    return eip712_digest(domain.separator, CLAIM_TOKEN.hash(permit.values()))


def sign_claim_token(domain: DomainDescriptor, permit: ClaimTokenPermit,
                     privkey_32: bytes) -> ClaimSignature:
    signature = sign_digest(claim_token_digest(domain, permit), privkey_32)
    return ClaimSignature.from_signature(permit, signature)
