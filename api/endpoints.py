from fastapi import HTTPException, Body, Depends
from typing import Optional
from api.models import (
    EncryptedDocumentRequest, EncryptedDocumentResponse,
    SopsConfigRequest, SopsConfigResponse
)
from core.config_renderer import config_content_id, render_sops_config
from core.encryptor import EncryptOptions, encrypt_document
from core.errors import ConfigurationError, ExternalServiceError, InputFormatError, SerializationError
from security.credentials import VaultCredentials, resolve_vault_credentials
from security.key_wrap import KeyWrapClient
import config
import logging

# --- Dependency Injection Setup ---
# Set by lifespan in main.py
_vault_credentials_instance: Optional[VaultCredentials] = None


def get_vault_credentials() -> VaultCredentials:
    global _vault_credentials_instance
    if _vault_credentials_instance is None:
        logging.warning("Vault credentials were not resolved at startup, attempting to resolve now.")
        try:
            _vault_credentials_instance = resolve_vault_credentials(
                address=config.VAULT_ADDR,
                token=config.VAULT_TOKEN,
                role_id=config.VAULT_ROLE_ID,
                secret_id=config.VAULT_SECRET_ID,
                approle_path=config.VAULT_APPROLE_PATH,
                transit_engine=config.VAULT_TRANSIT_ENGINE,
                timeout=config.VAULT_REQUEST_TIMEOUT,
            )
        except (ConfigurationError, ExternalServiceError) as e:
            logging.error(f"Vault credentials unavailable: {e}")
            raise HTTPException(status_code=503, detail=f"Vault credentials unavailable: {e}")
    return _vault_credentials_instance

def get_key_wrap_client(
    credentials: VaultCredentials = Depends(get_vault_credentials)
) -> KeyWrapClient:
    # One client per request; nothing is shared between encryption calls
    return credentials.new_client()

def encrypt_options(document_request: EncryptedDocumentRequest) -> EncryptOptions:
    return EncryptOptions(
        unencrypted_suffix=document_request.unencrypted_suffix,
        encrypted_suffix=document_request.encrypted_suffix,
        unencrypted_regex=document_request.unencrypted_regex,
        encrypted_regex=document_request.encrypted_regex,
        pretty_json=document_request.pretty,
    )

def get_validated_document_request(
    document_request: EncryptedDocumentRequest = Body(...)
) -> EncryptedDocumentRequest:
    # Resolved before get_key_wrap_client: a scope conflict answers 400 without any Vault call
    try:
        encrypt_options(document_request).scope_policy()
    except ConfigurationError as e:
        logging.error(f"Rejected encryption request for key '{document_request.vault_key_name}': {e}")
        raise HTTPException(status_code=400, detail=f"Invalid scope configuration: {e}")
    return document_request

# --- API Endpoints ---
# Plain (sync) functions: the Vault call blocks, so FastAPI runs these in its threadpool.

def create_encrypted_document(
    document_request: EncryptedDocumentRequest = Depends(get_validated_document_request),
    key_wrap_client: KeyWrapClient = Depends(get_key_wrap_client)
):
    logging.info(f"Received encryption request: key={document_request.vault_key_name}, format={document_request.output_format.value}")
    options = encrypt_options(document_request)
    try:
        ciphertext = encrypt_document(
            key_wrap_client,
            document_request.vault_key_name,
            document_request.content,
            output_format=document_request.output_format.value,
            options=options,
            format_version=config.SOPS_FORMAT_VERSION,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid scope configuration: {e}")
    except InputFormatError as e:
        raise HTTPException(status_code=422, detail=f"Failed to parse content: {e}")
    except SerializationError as e:
        raise HTTPException(status_code=422, detail=f"Failed to emit encrypted document: {e}")
    except ExternalServiceError as e:
        raise HTTPException(status_code=502, detail=f"SOPS encryption failed: {e}")

    return EncryptedDocumentResponse(
        id=document_request.vault_key_name,
        output_format=document_request.output_format,
        ciphertext=ciphertext
    )

def render_config(
    config_request: SopsConfigRequest = Body(...),
    credentials: VaultCredentials = Depends(get_vault_credentials)
):
    logging.info(f"Received config render request: key={config_request.vault_key_name}, rules={len(config_request.path_regexes or [])}")
    content = render_sops_config(
        credentials.address,
        credentials.transit_engine,
        config_request.vault_key_name,
        config_request.path_regexes,
    )
    return SopsConfigResponse(id=config_content_id(content), content=content)
