# --- File: encrypt_file.py ---
import os
import sys
import argparse
from typing import List, Optional

import config
from core.config_renderer import render_sops_config
from core.encryptor import EncryptOptions, encrypt_document
from core.errors import SopsEncryptError
from security.credentials import resolve_vault_credentials

import logging

logger = logging.getLogger(__name__)

# --- Helper Functions ---

def guess_input_format(file_path: str) -> str:
    """Input format from the file extension; anything that is not YAML is read as JSON."""
    extension = os.path.splitext(file_path)[1].lower()
    if extension in (".yaml", ".yml"):
        return "yaml"
    return "json"

def write_output(text: str, output_path: Optional[str]) -> None:
    if not output_path:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    output_dir = os.path.dirname(output_path)
    if output_dir and not os.path.exists(output_dir):
        os.makedirs(output_dir, exist_ok=True)
        logger.info(f"Created directory for output file: {output_dir}")
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(text)
    logger.info(f"Wrote {len(text)} characters to {output_path}")

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Encrypt a JSON/YAML file into a SOPS document using a Vault Transit key, or render a .sops.yaml.")
    parser.add_argument("--input", type=str, help="Plaintext document to encrypt (.json, .yaml or .yml).")
    parser.add_argument("--key-name", type=str, required=True, help="Name of the Vault Transit key.")
    parser.add_argument("--output-format", choices=["json", "yaml"], default="json", help="Format of the encrypted output.")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output with two spaces.")
    parser.add_argument("--output", type=str, help="Output file path. Defaults to stdout.")
    scope = parser.add_argument_group("scope (at most one)")
    scope.add_argument("--unencrypted-suffix", type=str, help="Keys ending with this suffix stay plaintext.")
    scope.add_argument("--encrypted-suffix", type=str, help="Only keys ending with this suffix are encrypted.")
    scope.add_argument("--unencrypted-regex", type=str, help="Keys matching this regex stay plaintext.")
    scope.add_argument("--encrypted-regex", type=str, help="Only keys matching this regex are encrypted.")
    parser.add_argument("--render-config", action="store_true", help="Render a .sops.yaml for --key-name instead of encrypting.")
    parser.add_argument("--path-regex", action="append", default=None, help="Creation rule path regex (repeatable, with --render-config).")
    vault = parser.add_argument_group("vault (defaults from environment)")
    vault.add_argument("--vault-addr", type=str, default=config.VAULT_ADDR, help="Vault server URL.")
    vault.add_argument("--transit-engine", type=str, default=config.VAULT_TRANSIT_ENGINE, help="Transit engine mount path.")
    return parser

# --- Main Script Logic ---
def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.render_config:
        if not args.vault_addr:
            logger.error("A Vault address is required: pass --vault-addr or set VAULT_ADDR.")
            return 1
        content = render_sops_config(args.vault_addr, args.transit_engine, args.key_name, args.path_regex)
        write_output(content, args.output)
        return 0

    if not args.input:
        parser.error("--input is required unless --render-config is given")

    try:
        with open(args.input, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        logger.error(f"Could not read input file {args.input}: {e}")
        return 1

    options = EncryptOptions(
        unencrypted_suffix=args.unencrypted_suffix,
        encrypted_suffix=args.encrypted_suffix,
        unencrypted_regex=args.unencrypted_regex,
        encrypted_regex=args.encrypted_regex,
        pretty_json=args.pretty,
    )

    logger.info(f"--- Encrypting {args.input} with Vault Transit key '{args.key_name}' ---")
    try:
        # Fail on scope conflicts before contacting Vault for a token
        options.scope_policy()
        credentials = resolve_vault_credentials(
            address=args.vault_addr,
            token=config.VAULT_TOKEN,
            role_id=config.VAULT_ROLE_ID,
            secret_id=config.VAULT_SECRET_ID,
            approle_path=config.VAULT_APPROLE_PATH,
            transit_engine=args.transit_engine,
            timeout=config.VAULT_REQUEST_TIMEOUT,
        )
        ciphertext = encrypt_document(
            credentials.new_client(),
            args.key_name,
            content,
            output_format=args.output_format,
            options=options,
            input_format=guess_input_format(args.input),
            format_version=config.SOPS_FORMAT_VERSION,
        )
    except SopsEncryptError as e:
        logger.error(f"Encryption failed: {e}")
        return 1

    write_output(ciphertext, args.output)
    return 0

if __name__ == "__main__":
    sys.exit(main())
