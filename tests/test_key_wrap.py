import base64
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from core.encryptor import EncryptOptions, encrypt_to_json
from core.errors import ConfigurationError, KeyWrapError
from security.key_wrap import VaultTransitClient
from sops_helpers import NESTED_CONTENT


def vault_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = json.dumps(body) if body is not None else ""
    if body is None:
        response.json.side_effect = ValueError("no JSON")
    else:
        response.json.return_value = body
    return response


@patch("security.key_wrap.requests.post")
def test_wrap_posts_base64_key_to_transit_encrypt(mock_post):
    mock_post.return_value = vault_response(body={"data": {"ciphertext": "vault:v1:abc"}})
    client = VaultTransitClient("http://vault:8200/", "s.token", timeout=5.0)

    assert client.wrap("my-key", b"\x01" * 32) == "vault:v1:abc"

    mock_post.assert_called_once_with(
        "http://vault:8200/v1/transit/encrypt/my-key",
        json={"plaintext": base64.b64encode(b"\x01" * 32).decode("utf-8")},
        headers={"X-Vault-Token": "s.token"},
        timeout=5.0,
    )


@patch("security.key_wrap.requests.post")
def test_wrap_uses_custom_engine_path(mock_post):
    mock_post.return_value = vault_response(body={"data": {"ciphertext": "vault:v2:xyz"}})
    client = VaultTransitClient("http://vault:8200", "t", engine_path="team-transit")
    client.wrap("k", b"\x00" * 32)
    assert mock_post.call_args[0][0] == "http://vault:8200/v1/team-transit/encrypt/k"
    assert client.engine_path == "team-transit"
    assert client.address == "http://vault:8200"


@patch("security.key_wrap.requests.post")
def test_wrap_reports_vault_errors_with_status(mock_post):
    mock_post.return_value = vault_response(403, {"errors": ["permission denied"]})
    with pytest.raises(KeyWrapError) as excinfo:
        VaultTransitClient("http://vault:8200", "t").wrap("k", b"\x00" * 32)
    assert excinfo.value.status_code == 403
    assert excinfo.value.key_name == "k"
    assert "permission denied" in str(excinfo.value)


@patch("security.key_wrap.requests.post")
def test_wrap_rejects_response_without_ciphertext(mock_post):
    mock_post.return_value = vault_response(body={"data": {}})
    with pytest.raises(KeyWrapError) as excinfo:
        VaultTransitClient("http://vault:8200", "t").wrap("k", b"\x00" * 32)
    assert "ciphertext not a string" in str(excinfo.value)


@patch("security.key_wrap.requests.post")
def test_wrap_rejects_non_json_body(mock_post):
    mock_post.return_value = vault_response(body=None)
    with pytest.raises(KeyWrapError):
        VaultTransitClient("http://vault:8200", "t").wrap("k", b"\x00" * 32)


@patch("security.key_wrap.requests.post")
def test_wrap_timeout(mock_post):
    mock_post.side_effect = requests.Timeout("read timed out")
    with pytest.raises(KeyWrapError) as excinfo:
        VaultTransitClient("http://vault:8200", "t", timeout=0.5).wrap("k", b"\x00" * 32)
    assert "timed out" in str(excinfo.value)


@patch("security.key_wrap.requests.post")
def test_wrap_connection_error(mock_post):
    mock_post.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(KeyWrapError):
        VaultTransitClient("http://vault:8200", "t").wrap("k", b"\x00" * 32)


@patch("security.key_wrap.requests.post")
def test_encryption_against_transit_records_vault_metadata(mock_post):
    mock_post.return_value = vault_response(body={"data": {"ciphertext": "vault:v1:wrapped"}})
    client = VaultTransitClient("http://vault:8200", "t")

    doc = json.loads(encrypt_to_json(client, "app", NESTED_CONTENT))

    assert mock_post.call_count == 1
    entry = doc["sops"]["hc_vault"][0]
    assert entry["vault_address"] == "http://vault:8200"
    assert entry["engine_path"] == "transit"
    assert entry["key_name"] == "app"
    assert entry["enc"] == "vault:v1:wrapped"


@patch("security.key_wrap.requests.post")
def test_scope_conflict_never_reaches_vault(mock_post):
    client = VaultTransitClient("http://vault:8200", "t")
    with pytest.raises(ConfigurationError):
        encrypt_to_json(client, "app", NESTED_CONTENT, EncryptOptions(encrypted_suffix="_e", unencrypted_regex="x"))
    mock_post.assert_not_called()
