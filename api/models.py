from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional

# --- API Request/Response Models (using Pydantic) ---

class OutputFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"

class EncryptedDocumentRequest(BaseModel):
    """Request model for encrypting a document."""
    content: str = Field(..., description="JSON-encoded document to encrypt.")
    vault_key_name: str = Field(..., min_length=1, description="Name of the Vault Transit key used to wrap the data key.")
    output_format: OutputFormat = Field(default=OutputFormat.JSON, description="Serialisation of the encrypted document ('json' or 'yaml').")
    pretty: bool = Field(default=False, description="Indent JSON output with two spaces. Ignored for YAML.")
    # At most one of the scope fields may be set
    unencrypted_suffix: Optional[str] = Field(None, description="Keys ending with this suffix are left in plaintext.")
    encrypted_suffix: Optional[str] = Field(None, description="Only keys ending with this suffix are encrypted.")
    unencrypted_regex: Optional[str] = Field(None, description="Keys matching this regex are left in plaintext.")
    encrypted_regex: Optional[str] = Field(None, description="Only keys matching this regex are encrypted.")

class EncryptedDocumentResponse(BaseModel):
    """Response model for an encrypted document."""
    id: str = Field(..., description="Identifier of the artifact (the Vault key name).")
    output_format: OutputFormat
    ciphertext: str = Field(..., description="SOPS-encrypted document, decryptable with `sops -d`.")

class SopsConfigRequest(BaseModel):
    """Request model for rendering a .sops.yaml file."""
    vault_key_name: str = Field(..., min_length=1, description="Name of the Vault Transit key referenced in every creation rule.")
    path_regexes: Optional[List[str]] = Field(None, description="One creation rule per regex; omitted or empty yields a single catch-all rule.")

class SopsConfigResponse(BaseModel):
    """Response model for a rendered .sops.yaml file."""
    id: str = Field(..., description="SHA-256 of the rendered content.")
    content: str = Field(..., description="Rendered .sops.yaml YAML content.")
