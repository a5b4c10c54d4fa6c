# sops_crypto_package/__init__.py

"""
SOPS Crypto Package (PyCryptodome)
Symmetric primitives for per-value envelope encryption in the SOPS format:
- AES-256 data key and 96-bit nonce generation (OS CSPRNG)
- AES-256-GCM authenticate-and-encrypt with additional data
- ENC[AES256_GCM,...] value framing
"""
from .key_generation import DATA_KEY_SIZE, NONCE_SIZE, generate_data_key, generate_nonce
from .symmetric_ciphers import SOPS_CIPHER_NAME, TAG_SIZE, aes_gcm_encrypt, format_sops_value

__all__ = [
    "DATA_KEY_SIZE",
    "NONCE_SIZE",
    "SOPS_CIPHER_NAME",
    "TAG_SIZE",
    "aes_gcm_encrypt",
    "format_sops_value",
    "generate_data_key",
    "generate_nonce",
]
