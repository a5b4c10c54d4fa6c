# --- File: core/config_renderer.py ---
"""
Renders `.sops.yaml` for the Vault Transit backend. Pure: no I/O, no cryptography.

With no path regexes a single catch-all creation rule is emitted with the
path_regex field omitted entirely (not set to an empty string), which sops
applies to every file.
"""
import hashlib
from typing import Iterable, Optional

from formats import dump_yaml


def build_key_uri(vault_address: str, engine_path: str, key_name: str) -> str:
    return f"{vault_address.rstrip('/')}/v1/{engine_path}/keys/{key_name}"


def render_sops_config(
    vault_address: str,
    engine_path: str,
    key_name: str,
    path_regexes: Optional[Iterable[str]] = None,
) -> str:
    key_uri = build_key_uri(vault_address, engine_path, key_name)
    regexes = list(path_regexes or [])
    if regexes:
        rules = [{"path_regex": regex, "hc_vault_transit_uri": key_uri} for regex in regexes]
    else:
        rules = [{"hc_vault_transit_uri": key_uri}]
    return dump_yaml({"creation_rules": rules})


def config_content_id(content: str) -> str:
    """Stable identifier for a rendered config: hex SHA-256 of its text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
