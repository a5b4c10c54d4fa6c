# --- File: core/metadata.py ---
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

SOPS_ALGORITHM = "AES256GCM"
EXTERNAL_KMS_PROVIDER = "external-kms"
DEFAULT_FORMAT_VERSION = "3.9.4"


def format_timestamp(dt: datetime) -> str:
    """RFC 3339 in UTC with second precision, e.g. 2024-05-01T12:00:00Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class KeyGroupEntry(BaseModel):
    """One wrapped copy of the data key, as returned by the key-wrapping service."""
    model_config = ConfigDict(frozen=True)

    provider: str = Field(default=EXTERNAL_KMS_PROVIDER, description="Key backend kind.")
    vault_address: str = Field(..., description="Base URL of the Vault server that wrapped the key.")
    engine_path: str = Field(..., description="Mount path of the Transit secrets engine.")
    key_name: str = Field(..., description="Name of the Transit key used for wrapping.")
    wrapped_data_key: str = Field(..., description="Opaque ciphertext token, e.g. vault:v1:...")
    creation_timestamp: datetime = Field(..., description="When the key was wrapped (UTC).")

    def to_sops_dict(self) -> Dict[str, Any]:
        return {
            "vault_address": self.vault_address,
            "engine_path": self.engine_path,
            "key_name": self.key_name,
            "created_at": format_timestamp(self.creation_timestamp),
            "enc": self.wrapped_data_key,
        }


class SopsMetadata(BaseModel):
    """
    Document-level metadata written under the top-level 'sops' key.
    Built once per encryption call and never modified afterwards.
    """
    model_config = ConfigDict(frozen=True)

    algorithm: str = Field(default=SOPS_ALGORITHM)
    key_groups: List[KeyGroupEntry] = Field(..., min_length=1, max_length=1)
    unencrypted_suffix: Optional[str] = None
    encrypted_suffix: Optional[str] = None
    unencrypted_regex: Optional[str] = None
    encrypted_regex: Optional[str] = None
    last_modified: datetime = Field(..., description="Timestamp the MAC is bound to (UTC).")
    mac: str = Field(..., description="Encrypted SHA-512 over the document's plaintext values.")
    format_version: str = Field(default=DEFAULT_FORMAT_VERSION)

    def to_sops_dict(self) -> Dict[str, Any]:
        """Metadata in the on-disk field order sops emits."""
        vault_keys = [group.to_sops_dict() for group in self.key_groups if group.provider == EXTERNAL_KMS_PROVIDER]
        out: Dict[str, Any] = {
            "hc_vault": vault_keys,
            "lastmodified": format_timestamp(self.last_modified),
            "mac": self.mac,
        }
        for field_name in ("unencrypted_suffix", "encrypted_suffix", "unencrypted_regex", "encrypted_regex"):
            value = getattr(self, field_name)
            if value:
                out[field_name] = value
        out["version"] = self.format_version
        return out
