# --- File: core/errors.py ---
from typing import Iterable, Optional


class SopsEncryptError(Exception):
    """Base class for every failure raised while producing an encrypted artifact."""


class ConfigurationError(SopsEncryptError):
    """Invalid caller-supplied configuration (scope policy, Vault credentials)."""


class ScopeConflictError(ConfigurationError):
    """More than one scope field was supplied for a single encryption call."""

    def __init__(self, fields: Iterable[str]):
        self.fields = sorted(fields)
        super().__init__(
            f"at most one of unencrypted_suffix, encrypted_suffix, unencrypted_regex, "
            f"encrypted_regex may be set; got {', '.join(self.fields)}"
        )


class InputFormatError(SopsEncryptError):
    """The source document is not valid structured data."""

    def __init__(self, message: str, fragment: Optional[str] = None):
        self.fragment = fragment
        if fragment:
            message = f"{message} (near: {fragment!r})"
        super().__init__(message)


class ExternalServiceError(SopsEncryptError):
    """A call to an external service failed, timed out, or returned an unexpected shape."""


class KeyWrapError(ExternalServiceError):
    """Wrapping the data key with the key-management service failed."""

    def __init__(self, message: str, key_name: Optional[str] = None, status_code: Optional[int] = None):
        self.key_name = key_name
        self.status_code = status_code
        super().__init__(message)


class SerializationError(SopsEncryptError):
    """The encrypted tree cannot be represented in the requested output format."""


# Names used by the format codecs and the encryptor contract.
ParseError = InputFormatError
SerializeError = SerializationError
