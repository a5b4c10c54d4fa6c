# sops_crypto_package/symmetric_ciphers.py
import base64
import logging

from Crypto.Cipher import AES

from .key_generation import DATA_KEY_SIZE, generate_nonce

logger = logging.getLogger(__name__)

SOPS_CIPHER_NAME = "AES256_GCM"
TAG_SIZE = 16


def aes_gcm_encrypt(plaintext_bytes, aes_key_bytes, additional_data=b"", nonce_bytes=None):
    """
    Authenticate-and-encrypt with AES-256-GCM.

    A fresh nonce is drawn for every call unless one is passed explicitly
    (tests only). additional_data is authenticated but not encrypted.

    Returns a dict with base64 'nonce_b64', 'ciphertext_b64' and 'tag_b64'.
    Raises TypeError/ValueError for an invalid key.
    """
    if not isinstance(aes_key_bytes, (bytes, bytearray)) or len(aes_key_bytes) != DATA_KEY_SIZE:
        logger.error("AES-GCM encryption refused: key must be exactly 32 bytes.")
        raise ValueError("AES-256-GCM requires a 32-byte key")

    if nonce_bytes is None:
        nonce_bytes = generate_nonce()

    try:
        cipher = AES.new(aes_key_bytes, AES.MODE_GCM, nonce=nonce_bytes, mac_len=TAG_SIZE)
        cipher.update(additional_data)
        ciphertext_bytes, tag_bytes = cipher.encrypt_and_digest(plaintext_bytes)
    except (TypeError, ValueError) as key_error:
        logger.error(f"AES-GCM encryption error: {key_error}")
        raise

    return {
        "nonce_b64": base64.b64encode(nonce_bytes).decode('utf-8'),
        "ciphertext_b64": base64.b64encode(ciphertext_bytes).decode('utf-8'),
        "tag_b64": base64.b64encode(tag_bytes).decode('utf-8'),
    }


def format_sops_value(aes_encrypted_package, type_tag):
    """Renders an encrypted package as the ENC[...] string understood by sops."""
    return (
        f"ENC[{SOPS_CIPHER_NAME},"
        f"data:{aes_encrypted_package['ciphertext_b64']},"
        f"iv:{aes_encrypted_package['nonce_b64']},"
        f"tag:{aes_encrypted_package['tag_b64']},"
        f"type:{type_tag}]"
    )
