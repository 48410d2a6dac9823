import logging
from typing import NamedTuple

from coincurve import PrivateKey, PublicKey
from eth_hash.auto import keccak
from eth_utils import encode_hex

from abi_codec import encode_packed
from eip712_errors import RecoveryError, SigningError

logger = logging.getLogger(__name__)

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

# ---------- EIP-712 core ----------

# EIP-191 version byte 0x19 followed by the EIP-712 version byte 0x01
EIP191_PREFIX = b"\x19\x01"


def eip712_digest(domain_separator: bytes, struct_hash: bytes) -> bytes:
    packed = encode_packed(
        ["bytes1", "bytes1", "bytes32", "bytes32"],
        [EIP191_PREFIX[:1], EIP191_PREFIX[1:], domain_separator, struct_hash],
    )
    digest = keccak(packed)
    logger.debug("eip712 digest %s", digest.hex())
    return digest


# ---------- signature value ----------

class Signature(NamedTuple):
    r: bytes
    s: bytes
    recovery_id: int  # raw 0/1

    @property
    def v(self) -> int:
        """Legacy 27/28 form."""
        return self.recovery_id + 27

    def eip155_v(self, chain_id: int) -> int:
        return self.recovery_id + 35 + 2 * chain_id

    def to_bytes(self) -> bytes:
        # r (32) + s (32) + v (1 byte)
        return self.r + self.s + bytes([self.v])

    def to_hex(self) -> str:
        return encode_hex(self.to_bytes())


# ---------- deterministic secp256k1 ----------

def _check_digest(digest_32) -> bytes:
    if not isinstance(digest_32, (bytes, bytearray)) or len(digest_32) != 32:
        raise SigningError("digest must be exactly 32 bytes")
    return bytes(digest_32)


def _load_key(privkey_32) -> PrivateKey:
    # never echo key material in messages
    if not isinstance(privkey_32, (bytes, bytearray)):
        raise SigningError(f"private key must be bytes, got {type(privkey_32).__name__}")
    if len(privkey_32) != 32:
        raise SigningError(f"private key must be 32 bytes, got {len(privkey_32)}")
    secret = int.from_bytes(privkey_32, "big")
    if secret == 0 or secret >= SECP256K1_N:
        raise SigningError("private key is outside the secp256k1 scalar range")
    try:
        return PrivateKey(bytes(privkey_32))
    except ValueError as exc:
        raise SigningError("private key rejected by secp256k1") from exc


def public_key_from_private_key(privkey_32) -> bytes:
    """65-byte uncompressed public key (0x04 || X || Y)."""
    return _load_key(privkey_32).public_key.format(compressed=False)


def recover_public_key(digest_32: bytes, r: bytes, s: bytes, v: int) -> bytes:
    """Recover the uncompressed public key; `v` may be 0/1 or 27/28."""
    if v >= 27:
        v -= 27
    if v not in (0, 1) or len(r) != 32 or len(s) != 32 or len(digest_32) != 32:
        raise RecoveryError("malformed signature or digest")
    sig65 = bytes(r) + bytes(s) + bytes([v])
    try:
        recovered = PublicKey.from_signature_and_message(sig65, bytes(digest_32), hasher=None)
    except ValueError as exc:
        raise RecoveryError("failed to recover public key") from exc
    return recovered.format(compressed=False)


def _match_recovery_id(digest_32: bytes, r: bytes, s: bytes, expected: bytes, hint: int) -> int:
    for candidate in (hint, hint ^ 1):
        try:
            if recover_public_key(digest_32, r, s, candidate) == expected:
                return candidate
        except RecoveryError:
            continue
    raise RecoveryError("neither recovery id reproduces the signer's public key")


def sign_digest(digest_32: bytes, privkey_32: bytes) -> Signature:
    digest = _check_digest(digest_32)
    pk = _load_key(privkey_32)

    # 65-byte recoverable signature (r||s||recid)
    # coincurve uses libsecp256k1 RFC6979 deterministic nonce generation
    sig65 = pk.sign_recoverable(digest, hasher=None)

    r = sig65[:32]
    s_int = int.from_bytes(sig65[32:64], "big")
    hint = sig65[64]

    # low-S form; flipping s flips the parity of R's y coordinate
    if s_int > SECP256K1_HALF_N:
        s_int = SECP256K1_N - s_int
        hint ^= 1
    s = s_int.to_bytes(32, "big")

    recovery_id = _match_recovery_id(digest, r, s, pk.public_key.format(compressed=False), hint)
    logger.debug("signed digest %s recovery_id=%d", digest.hex(), recovery_id)
    return Signature(r, s, recovery_id)


def verify_digest(pubkey_bytes: bytes, digest_32: bytes, r: bytes, s: bytes, v: int) -> bool:
    """True when (r, s, v) over digest_32 recovers to pubkey_bytes."""
    expected = PublicKey(bytes(pubkey_bytes)).format(compressed=False)
    try:
        return recover_public_key(digest_32, r, s, v) == expected
    except RecoveryError:
        return False
