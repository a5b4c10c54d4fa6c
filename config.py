import os
from dotenv import load_dotenv
import logging

load_dotenv()

LOG_LEVEL_FROM_ENV = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, LOG_LEVEL_FROM_ENV, logging.INFO)

logging.basicConfig(
    level=numeric_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# --- Vault Connection ---
# Read here, in the calling layer only; the encryption core receives these as parameters.
VAULT_ADDR = os.getenv("VAULT_ADDR")
VAULT_TOKEN = os.getenv("VAULT_TOKEN")
VAULT_TRANSIT_ENGINE = os.getenv("VAULT_TRANSIT_ENGINE", "transit")
VAULT_REQUEST_TIMEOUT = float(os.getenv("VAULT_REQUEST_TIMEOUT", "10"))

# --- AppRole Auth (alternative to VAULT_TOKEN) ---
VAULT_ROLE_ID = os.getenv("VAULT_ROLE_ID")
VAULT_SECRET_ID = os.getenv("VAULT_SECRET_ID")
VAULT_APPROLE_PATH = os.getenv("VAULT_APPROLE_PATH", "approle")

# --- Output Format ---
SOPS_FORMAT_VERSION = os.getenv("SOPS_FORMAT_VERSION", "3.9.4")

# --- Server Settings ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
RELOAD = os.getenv("RELOAD", "false").lower() == "true"
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000").split(",")


# --- Basic Validation ---
if not VAULT_ADDR:
    logger.warning("VAULT_ADDR environment variable not set. Encryption requests will fail until it is configured.")
if VAULT_TOKEN and (VAULT_ROLE_ID or VAULT_SECRET_ID):
    logger.warning("Both VAULT_TOKEN and AppRole credentials are set. Credential resolution will reject this combination.")
elif not VAULT_TOKEN and not (VAULT_ROLE_ID and VAULT_SECRET_ID):
    logger.warning("No Vault credentials configured (VAULT_TOKEN or VAULT_ROLE_ID + VAULT_SECRET_ID).")
