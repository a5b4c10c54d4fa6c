# security/__init__.py
from .key_wrap import KeyWrapClient, VaultTransitClient
from .credentials import VaultCredentials, approle_login, resolve_vault_credentials

__all__ = ["KeyWrapClient", "VaultTransitClient", "VaultCredentials", "approle_login", "resolve_vault_credentials"]
