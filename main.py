from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from api import endpoints
from api.models import EncryptedDocumentResponse, SopsConfigResponse
from contextlib import asynccontextmanager
from core.errors import ConfigurationError, ExternalServiceError
from security.credentials import resolve_vault_credentials
import uvicorn
import logging
import config # Your config file


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    logging.info("Application startup sequence initiated...")

    if endpoints._vault_credentials_instance is None:
        logging.info("Lifespan: Resolving Vault credentials...")
        try:
            endpoints._vault_credentials_instance = resolve_vault_credentials(
                address=config.VAULT_ADDR,
                token=config.VAULT_TOKEN,
                role_id=config.VAULT_ROLE_ID,
                secret_id=config.VAULT_SECRET_ID,
                approle_path=config.VAULT_APPROLE_PATH,
                transit_engine=config.VAULT_TRANSIT_ENGINE,
                timeout=config.VAULT_REQUEST_TIMEOUT,
            )
            logging.info(f"Lifespan: Vault credentials resolved for {endpoints._vault_credentials_instance.address} "
                         f"(transit engine '{endpoints._vault_credentials_instance.transit_engine}').")
        except (ConfigurationError, ExternalServiceError) as e:
            # Requests will retry resolution and answer 503 until Vault is configured
            logging.critical(f"Lifespan: Vault credentials could not be resolved: {e}")

    yield

    # --- Shutdown ---
    endpoints._vault_credentials_instance = None
    logging.info("Application shutdown complete.")

app = FastAPI(
    title="SOPS Vault Transit Encryption API",
    description="API for envelope-encrypting JSON documents into SOPS JSON/YAML with HashiCorp Vault Transit, and rendering .sops.yaml files.",
    version="0.1.0",
    lifespan=lifespan
)

logging.info(f"CORS allowed origins: {config.CORS_ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logging.error(f"HTTP Exception: Status Code={exc.status_code}, Detail={exc.detail}, Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": f"An error occurred: {exc.detail}"},
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logging.exception(f"Unhandled Exception at Path {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"message": "An unexpected internal server error occurred. Please check server logs."},
    )

app.post(
    "/documents", response_model=EncryptedDocumentResponse, summary="Encrypt a Document",
    tags=["Encryption"], status_code=201
)(endpoints.create_encrypted_document)

app.post(
    "/config", response_model=SopsConfigResponse, summary="Render a .sops.yaml Configuration",
    tags=["Configuration"]
)(endpoints.render_config)

@app.get("/", summary="Root endpoint", tags=["General"], include_in_schema=False)
async def read_root():
    return {"message": "SOPS Vault Transit Encryption API. See /docs for details."}

if __name__ == "__main__":
    logging.info("Starting SOPS Vault Transit Encryption API server using Uvicorn...")
    if not config.VAULT_ADDR:
        logging.critical("VAULT_ADDR environment variable is not set. Encryption requests will fail.")

    log_level = config.LOG_LEVEL_FROM_ENV.lower()
    logging.info(f"Server starting on {config.HOST}:{config.PORT} with log level {log_level} and reload {'enabled' if config.RELOAD else 'disabled'}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        log_level=log_level,
        reload=config.RELOAD
    )
