# sops_crypto_package/key_generation.py

from Crypto.Random import get_random_bytes

DATA_KEY_SIZE = 32  # AES-256
NONCE_SIZE = 12  # 96-bit GCM nonce


def generate_data_key():
    """
    Generates a fresh AES-256 data key.
    Returns:
        bytes: 32 bytes from the OS CSPRNG. Never persist or log this value.
    """
    return get_random_bytes(DATA_KEY_SIZE)


def generate_nonce():
    """Generates a fresh 96-bit nonce for one AES-GCM operation."""
    return get_random_bytes(NONCE_SIZE)
