import logging
import os
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

from eth_utils import remove_0x_prefix

from eip712_errors import ConfigError, EncodingError, SigningError
from eip712_struct import DomainDescriptor

logger = logging.getLogger(__name__)

SIGNER_KEY_VAR = "EIP712_SIGNER_KEY"
DOMAIN_NAME_VAR = "EIP712_DOMAIN_NAME"
DOMAIN_VERSION_VAR = "EIP712_DOMAIN_VERSION"
CHAIN_ID_VAR = "EIP712_CHAIN_ID"
VERIFYING_CONTRACT_VAR = "EIP712_VERIFYING_CONTRACT"


def wipe(buf: bytearray) -> None:
    """Zero a key buffer in place."""
    buf[:] = bytes(len(buf))


def parse_private_key(text: str) -> bytearray:
    """64 hex chars, optional 0x prefix -> 32-byte bytearray the caller can wipe()."""
    text = remove_0x_prefix(text.strip())
    if not text:
        raise SigningError("private key is empty")
    if len(text) != 64:
        raise SigningError(f"private key must be 64 hex characters, got {len(text)}")
    try:
        return bytearray.fromhex(text)
    except ValueError as exc:
        raise SigningError("private key is not valid hex") from exc


@contextmanager
def private_key_from_env(var: str = SIGNER_KEY_VAR,
                         environ: Optional[Mapping[str, str]] = None) -> Iterator[bytearray]:
    """
    Yield the signing key from the environment and zero it on exit.

    No fallback key: a missing or empty variable raises SigningError.
    """
    env = os.environ if environ is None else environ
    text = env.get(var, "")
    if not text:
        raise SigningError(f"{var} is not set")
    key = parse_private_key(text)
    try:
        yield key
    finally:
        wipe(key)


def _require(env: Mapping[str, str], var: str) -> str:
    value = env.get(var)
    if not value:
        raise ConfigError(var)
    return value


def load_domain(environ: Optional[Mapping[str, str]] = None) -> DomainDescriptor:
    env = os.environ if environ is None else environ
    try:
        domain = DomainDescriptor(
            name=_require(env, DOMAIN_NAME_VAR),
            version=env.get(DOMAIN_VERSION_VAR) or "1",
            chain_id=env.get(CHAIN_ID_VAR) or "1",
            verifying_contract=_require(env, VERIFYING_CONTRACT_VAR),
        )
    except EncodingError as exc:
        raise ConfigError(f"invalid EIP-712 domain settings: {exc}") from exc
    logger.debug("loaded EIP-712 domain %r v%s on chain %d", domain.name, domain.version, domain.chain_id)
    return domain
