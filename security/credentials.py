# --- File: security/credentials.py ---
import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.errors import ConfigurationError, KeyWrapError
from .key_wrap import DEFAULT_TIMEOUT_SECONDS, DEFAULT_TRANSIT_ENGINE, VaultTransitClient, vault_write

logger = logging.getLogger(__name__)

DEFAULT_APPROLE_PATH = "approle"


class VaultCredentials(BaseModel):
    """Resolved Vault connection settings handed to every encryption request."""
    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="Vault server URL.")
    token: str = Field(..., repr=False, description="Client token used for Transit calls.")
    transit_engine: str = Field(default=DEFAULT_TRANSIT_ENGINE)
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)

    def new_client(self) -> VaultTransitClient:
        return VaultTransitClient(self.address, self.token, engine_path=self.transit_engine, timeout=self.timeout)


def _resolve(explicit: Optional[str], env: Mapping[str, str], env_var: str) -> str:
    if explicit:
        return explicit
    return env.get(env_var, "") or ""


def approle_login(
    address: str,
    approle_path: str,
    role_id: str,
    secret_id: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Authenticates with the AppRole method and returns the client token."""
    path = f"auth/{approle_path}/login"
    logger.info(f"Logging in to Vault via AppRole at {path}")
    try:
        body = vault_write(address, None, path, {"role_id": role_id, "secret_id": secret_id}, timeout=timeout)
    except KeyWrapError as e:
        raise KeyWrapError(f"approle login at {path}: {e}", status_code=e.status_code) from e
    auth = body.get("auth")
    token = auth.get("client_token") if isinstance(auth, dict) else None
    if not token:
        logger.error("AppRole login returned an empty auth response.")
        raise KeyWrapError("approle login: empty auth response from Vault")
    return token


def resolve_vault_credentials(
    address: Optional[str] = None,
    token: Optional[str] = None,
    role_id: Optional[str] = None,
    secret_id: Optional[str] = None,
    approle_path: Optional[str] = None,
    transit_engine: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    env: Optional[Mapping[str, str]] = None,
) -> VaultCredentials:
    """
    Explicit values take precedence; VAULT_ADDR, VAULT_TOKEN, VAULT_ROLE_ID and
    VAULT_SECRET_ID are the fallback. Either a token or a complete AppRole pair
    must be available, never both.
    """
    if env is None:
        env = os.environ

    vault_address = _resolve(address, env, "VAULT_ADDR")
    if not vault_address:
        raise ConfigurationError(
            "Missing Vault address: set vault_address or the VAULT_ADDR environment variable."
        )

    vault_token = _resolve(token, env, "VAULT_TOKEN")
    resolved_role_id = _resolve(role_id, env, "VAULT_ROLE_ID")
    resolved_secret_id = _resolve(secret_id, env, "VAULT_SECRET_ID")
    has_approle = bool(resolved_role_id or resolved_secret_id)

    if vault_token and has_approle:
        raise ConfigurationError(
            "Conflicting Vault credentials: provide either vault_token or AppRole credentials "
            "(vault_role_id + vault_secret_id), not both."
        )

    if not vault_token:
        if resolved_role_id and resolved_secret_id:
            vault_token = approle_login(
                vault_address, approle_path or DEFAULT_APPROLE_PATH, resolved_role_id, resolved_secret_id, timeout=timeout
            )
        elif has_approle:
            raise ConfigurationError(
                "Incomplete AppRole credentials: both vault_role_id and vault_secret_id are required."
            )
        else:
            raise ConfigurationError(
                "Missing Vault credentials: provide vault_token (or VAULT_TOKEN) or both "
                "vault_role_id and vault_secret_id for AppRole authentication."
            )

    return VaultCredentials(
        address=vault_address,
        token=vault_token,
        transit_engine=transit_engine or DEFAULT_TRANSIT_ENGINE,
        timeout=timeout,
    )
