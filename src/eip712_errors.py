class Eip712Error(Exception):
    """Base class for everything raised by the digest/sign pipeline."""


class EncodingError(Eip712Error, ValueError):
    """A value cannot be represented in its declared fixed-width type."""


class SigningError(Eip712Error, ValueError):
    """Bad private key or digest handed to the signer."""


class RecoveryError(Eip712Error):
    """Recovered public key matches neither candidate. Should never happen."""


class ConfigError(Eip712Error, KeyError):
    """Required environment setting missing or malformed."""
