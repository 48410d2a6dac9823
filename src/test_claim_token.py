import pytest
from eth_hash.auto import keccak

from claim_token import CLAIM_TOKEN, ClaimSignature, ClaimTokenPermit, claim_token_digest, sign_claim_token
from eip712_errors import EncodingError, SigningError
from eip712_struct import DOMAIN_TYPEHASH, DomainDescriptor
from sign_core import public_key_from_private_key, recover_public_key, sign_digest

# fixed private key (DO NOT USE IN PRODUCTION)
PRIV = bytes.fromhex("1" * 64)

CONTRACT = "0xddaAd340b0f1Ef65169Ae5E41A8b10776a75482d"
USER = "0x10e3a183db48d854870feda31630bc1eb0ddd52a"

DOMAIN = DomainDescriptor("ClaimToken", "1", 1, CONTRACT)
PERMIT = ClaimTokenPermit(
    uuid=123456789,
    amount=1000000000,
    user_address=USER,
    nonce=1,
    deadline=1698591527,
)


def reference_digest():
    # hand-assembled from raw words, independent of StructType/encode_word
    type_hash = keccak(b"claimToken(uint256 uuid,uint256 amount,address userAddress,uint256 nonce,uint deadline)")
    struct_hash = keccak(
        type_hash +
        (123456789).to_bytes(32, "big") +
        (1000000000).to_bytes(32, "big") +
        bytes(12) + bytes.fromhex(USER[2:]) +
        (1).to_bytes(32, "big") +
        (1698591527).to_bytes(32, "big")
    )
    separator = keccak(
        DOMAIN_TYPEHASH +
        keccak(b"ClaimToken") +
        keccak(b"1") +
        (1).to_bytes(32, "big") +
        bytes(12) + bytes.fromhex(CONTRACT[2:].lower())
    )
    return keccak(b"\x19\x01" + separator + struct_hash)


def test_claim_token_signature_text():
    assert CLAIM_TOKEN.signature == \
        "claimToken(uint256 uuid,uint256 amount,address userAddress,uint256 nonce,uint deadline)"


def test_claim_token_conformance_vector():
    digest = claim_token_digest(DOMAIN, PERMIT)
    assert len(digest) == 32
    assert digest == reference_digest()
    assert claim_token_digest(DOMAIN, PERMIT) == digest


def test_string_inputs_give_same_digest():
    permit = ClaimTokenPermit("123456789", "1000000000", USER.upper().replace("0X", "0x"), "1", "0x653e7327")
    assert claim_token_digest(DOMAIN, permit) == reference_digest()


def test_sign_claim_token():
    result = sign_claim_token(DOMAIN, PERMIT, PRIV)
    sig = sign_digest(reference_digest(), PRIV)

    assert isinstance(result, ClaimSignature)
    assert result.uuid == "123456789"
    assert result.amount == "1000000000"
    assert result.user_address == USER
    assert result.nonce == "1"
    assert result.deadline == "1698591527"
    assert result.v == sig.v
    assert result.r == "0x" + sig.r.hex()
    assert result.s == "0x" + sig.s.hex()

    recovered = recover_public_key(
        reference_digest(), bytes.fromhex(result.r[2:]), bytes.fromhex(result.s[2:]), result.v)
    assert recovered == public_key_from_private_key(PRIV)


def test_sign_claim_token_without_key_fails():
    with pytest.raises(SigningError):
        sign_claim_token(DOMAIN, PERMIT, b"")


def test_claim_amount_overflow_rejected():
    permit = ClaimTokenPermit(1, 2 ** 256, USER, 0, 0)
    with pytest.raises(EncodingError):
        claim_token_digest(DOMAIN, permit)
