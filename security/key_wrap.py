# --- File: security/key_wrap.py ---
import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from core.errors import KeyWrapError

logger = logging.getLogger(__name__)

DEFAULT_TRANSIT_ENGINE = "transit"
DEFAULT_TIMEOUT_SECONDS = 10.0


class KeyWrapClient(ABC):
    """
    Wraps (encrypts) a raw data key with a key held by an external key-management service.
    Implementations perform exactly one remote call per wrap() and never retry.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """Base URL of the key-management service, recorded in the document metadata."""

    @property
    @abstractmethod
    def engine_path(self) -> str:
        """Mount path of the wrapping engine, recorded in the document metadata."""

    @abstractmethod
    def wrap(self, key_name: str, plaintext_key: bytes) -> str:
        """Returns the opaque wrapped-key token. Raises KeyWrapError on any failure."""


def vault_write(
    address: str,
    token: Optional[str],
    path: str,
    payload: Dict[str, Any],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    key_name: Optional[str] = None,
) -> Dict[str, Any]:
    """POSTs payload to {address}/v1/{path} and returns the decoded JSON body."""
    url = f"{address.rstrip('/')}/v1/{path}"
    headers = {"X-Vault-Token": token} if token else {}
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.Timeout as e:
        logger.error(f"Vault request to {path} timed out after {timeout}s")
        raise KeyWrapError(f"vault request ({path}) timed out after {timeout}s", key_name=key_name) from e
    except requests.RequestException as e:
        logger.error(f"Vault request to {path} failed: {e}")
        raise KeyWrapError(f"vault request ({path}) failed: {e}", key_name=key_name) from e

    try:
        body = response.json()
    except ValueError:
        body = None

    if not response.ok:
        errors = body.get("errors") if isinstance(body, dict) else None
        detail = "; ".join(str(err) for err in errors) if errors else (response.text or "").strip()[:200]
        logger.error(f"Vault request to {path} returned HTTP {response.status_code}: {detail}")
        raise KeyWrapError(
            f"vault request ({path}) returned HTTP {response.status_code}: {detail}",
            key_name=key_name,
            status_code=response.status_code,
        )
    if not isinstance(body, dict):
        logger.error(f"Vault request to {path} returned a non-JSON body.")
        raise KeyWrapError(f"unexpected vault response ({path}): body is not a JSON object", key_name=key_name)
    return body


class VaultTransitClient(KeyWrapClient):
    """KeyWrapClient backed by the HashiCorp Vault Transit 'encrypt' endpoint."""

    def __init__(
        self,
        address: str,
        token: str,
        engine_path: str = DEFAULT_TRANSIT_ENGINE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._address = address
        self._token = token
        self._engine_path = engine_path
        self.timeout = timeout

    @property
    def address(self) -> str:
        return self._address

    @property
    def engine_path(self) -> str:
        return self._engine_path

    def wrap(self, key_name: str, plaintext_key: bytes) -> str:
        path = f"{self._engine_path}/encrypt/{key_name}"
        logger.info(f"Wrapping data key with Vault Transit key '{key_name}' at {path}")
        body = vault_write(
            self._address,
            self._token,
            path,
            {"plaintext": base64.b64encode(plaintext_key).decode('utf-8')},
            timeout=self.timeout,
            key_name=key_name,
        )
        data = body.get("data")
        ciphertext = data.get("ciphertext") if isinstance(data, dict) else None
        if not isinstance(ciphertext, str) or not ciphertext:
            logger.error(f"Vault transit encrypt ({path}) response has no ciphertext string.")
            raise KeyWrapError("unexpected vault response: ciphertext not a string", key_name=key_name)
        return ciphertext
