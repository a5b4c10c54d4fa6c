# --- File: core/encryptor.py ---
import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from core.document_tree import (
    DocumentTree,
    EncryptedLeaf,
    TreePath,
    is_empty_scalar,
    map_leaves,
    scalar_mac_bytes,
    scalar_to_bytes,
    scalar_type_tag,
    sops_path_string,
)
from core.errors import KeyWrapError
from core.metadata import DEFAULT_FORMAT_VERSION, KeyGroupEntry, SopsMetadata, format_timestamp
from core.scope import ScopePolicy, should_encrypt
from formats import get_codec
from security.key_wrap import KeyWrapClient
from sops_crypto_package import aes_gcm_encrypt, format_sops_value, generate_data_key

logger = logging.getLogger(__name__)


class EncryptOptions(BaseModel):
    """
    Caller options for one encryption. At most one scope field may be non-empty:
      unencrypted_suffix - keys ending with this suffix stay plaintext
      encrypted_suffix   - only keys ending with this suffix are encrypted
      unencrypted_regex  - keys matching this regex stay plaintext
      encrypted_regex    - only keys matching this regex are encrypted
    With no scope field set every value is encrypted.
    pretty_json only affects JSON output.
    """
    unencrypted_suffix: Optional[str] = None
    encrypted_suffix: Optional[str] = None
    unencrypted_regex: Optional[str] = None
    encrypted_regex: Optional[str] = None
    pretty_json: bool = Field(default=False, description="Indent JSON output with two spaces.")

    def scope_policy(self) -> ScopePolicy:
        return ScopePolicy.from_fields(
            unencrypted_suffix=self.unencrypted_suffix,
            encrypted_suffix=self.encrypted_suffix,
            unencrypted_regex=self.unencrypted_regex,
            encrypted_regex=self.encrypted_regex,
        )


class EnvelopeEncryptor:
    """
    Envelope-encrypts document trees: one random data key per call, wrapped once by
    the KeyWrapClient, then AES-256-GCM over every leaf the scope policy selects.
    """
    def __init__(self, key_wrap_client: KeyWrapClient, format_version: str = DEFAULT_FORMAT_VERSION):
        self.key_wrap_client = key_wrap_client
        self.format_version = format_version

    def encrypt(
        self,
        tree: DocumentTree,
        key_name: str,
        options: Optional[EncryptOptions] = None,
    ) -> Tuple[DocumentTree, SopsMetadata]:
        # Scope validation must happen before any key material or remote call exists.
        policy = (options or EncryptOptions()).scope_policy()
        return self.encrypt_tree(tree, key_name, policy)

    def encrypt_tree(self, tree: DocumentTree, key_name: str, policy: ScopePolicy) -> Tuple[DocumentTree, SopsMetadata]:
        logger.info(f"Encrypting document with key '{key_name}' (scope: {policy.kind.value}).")
        data_key = generate_data_key()
        wrapped_key = self._wrap(key_name, data_key)
        now = datetime.now(timezone.utc).replace(microsecond=0)

        mac_hash = hashlib.sha512()
        counts = {"encrypted": 0, "plaintext": 0}

        def encrypt_leaf(path: TreePath, value):
            mac_bytes = scalar_mac_bytes(value)
            if mac_bytes is not None:
                mac_hash.update(mac_bytes)
            if is_empty_scalar(value) or not should_encrypt(path, policy):
                counts["plaintext"] += 1
                return value
            additional_data = sops_path_string(path)
            package = aes_gcm_encrypt(scalar_to_bytes(value), data_key, additional_data.encode('utf-8'))
            counts["encrypted"] += 1
            logger.debug(f"Encrypted leaf at '{additional_data}'")
            return EncryptedLeaf.from_package(package, scalar_type_tag(value))

        encrypted_tree = map_leaves(tree, encrypt_leaf)

        last_modified = format_timestamp(now)
        mac_package = aes_gcm_encrypt(
            mac_hash.hexdigest().upper().encode('utf-8'), data_key, last_modified.encode('utf-8')
        )
        metadata = SopsMetadata(
            key_groups=[
                KeyGroupEntry(
                    vault_address=self.key_wrap_client.address,
                    engine_path=self.key_wrap_client.engine_path,
                    key_name=key_name,
                    wrapped_data_key=wrapped_key,
                    creation_timestamp=now,
                )
            ],
            last_modified=now,
            mac=format_sops_value(mac_package, "str"),
            format_version=self.format_version,
            **policy.metadata_fields(),
        )
        logger.info(
            f"Document encrypted: {counts['encrypted']} value(s) encrypted, "
            f"{counts['plaintext']} left in plaintext."
        )
        return encrypted_tree, metadata

    def _wrap(self, key_name: str, data_key: bytes) -> str:
        try:
            wrapped_key = self.key_wrap_client.wrap(key_name, data_key)
        except KeyWrapError:
            raise
        except Exception as e:
            logger.error(f"Key wrap for '{key_name}' failed: {e}")
            raise KeyWrapError(f"wrapping data key with '{key_name}' failed: {e}", key_name=key_name) from e
        if not isinstance(wrapped_key, str) or not wrapped_key:
            logger.error(f"Key wrap for '{key_name}' returned no usable token.")
            raise KeyWrapError(f"key wrap for '{key_name}' returned a malformed token", key_name=key_name)
        return wrapped_key


def encrypt_document(
    key_wrap_client: KeyWrapClient,
    key_name: str,
    content: str,
    output_format: str = "json",
    options: Optional[EncryptOptions] = None,
    input_format: str = "json",
    format_version: str = DEFAULT_FORMAT_VERSION,
) -> str:
    """Parses content, encrypts it and serialises the result as SOPS JSON or YAML."""
    options = options or EncryptOptions()
    policy = options.scope_policy()
    output_codec = get_codec(output_format)
    tree = get_codec(input_format).parse(content)
    encryptor = EnvelopeEncryptor(key_wrap_client, format_version=format_version)
    encrypted_tree, metadata = encryptor.encrypt_tree(tree, key_name, policy)
    return output_codec.serialize(encrypted_tree, metadata, pretty=options.pretty_json)


def encrypt_to_json(key_wrap_client: KeyWrapClient, key_name: str, json_content: str, options: Optional[EncryptOptions] = None) -> str:
    """Result is decryptable with `sops -d --input-type json`."""
    return encrypt_document(key_wrap_client, key_name, json_content, "json", options)


def encrypt_to_yaml(key_wrap_client: KeyWrapClient, key_name: str, json_content: str, options: Optional[EncryptOptions] = None) -> str:
    """Input is always JSON; result is decryptable with `sops -d --input-type yaml`."""
    return encrypt_document(key_wrap_client, key_name, json_content, "yaml", options)
