from unittest.mock import MagicMock, patch

import pytest

from core.errors import ConfigurationError, KeyWrapError
from security.credentials import VaultCredentials, approle_login, resolve_vault_credentials
from security.key_wrap import VaultTransitClient


def login_response(body, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = body
    response.text = ""
    return response


def test_explicit_token():
    creds = resolve_vault_credentials(address="http://vault:8200", token="s.abc", env={})
    assert creds.address == "http://vault:8200"
    assert creds.token == "s.abc"
    assert creds.transit_engine == "transit"


def test_environment_fallback():
    creds = resolve_vault_credentials(env={"VAULT_ADDR": "http://env:8200", "VAULT_TOKEN": "s.env"})
    assert creds.address == "http://env:8200"
    assert creds.token == "s.env"


def test_explicit_values_win_over_environment():
    creds = resolve_vault_credentials(
        address="http://explicit:8200",
        token="s.explicit",
        transit_engine="team-transit",
        env={"VAULT_ADDR": "http://env:8200", "VAULT_TOKEN": "s.env"},
    )
    assert creds.address == "http://explicit:8200"
    assert creds.token == "s.explicit"
    assert creds.transit_engine == "team-transit"


def test_missing_address():
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_vault_credentials(token="s.abc", env={})
    assert "Missing Vault address" in str(excinfo.value)


def test_token_and_approle_conflict():
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_vault_credentials(address="http://v", token="t", role_id="r", secret_id="s", env={})
    assert "Conflicting Vault credentials" in str(excinfo.value)


def test_incomplete_approle():
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_vault_credentials(address="http://v", role_id="r", env={})
    assert "Incomplete AppRole credentials" in str(excinfo.value)


def test_no_credentials_at_all():
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_vault_credentials(address="http://v", env={})
    assert "Missing Vault credentials" in str(excinfo.value)


@patch("security.key_wrap.requests.post")
def test_approle_login_supplies_token(mock_post):
    mock_post.return_value = login_response({"auth": {"client_token": "s.from-approle"}})

    creds = resolve_vault_credentials(
        address="http://vault:8200",
        env={"VAULT_ROLE_ID": "role", "VAULT_SECRET_ID": "secret"},
        approle_path="ci-approle",
    )

    assert creds.token == "s.from-approle"
    mock_post.assert_called_once_with(
        "http://vault:8200/v1/auth/ci-approle/login",
        json={"role_id": "role", "secret_id": "secret"},
        headers={},
        timeout=10.0,
    )


@patch("security.key_wrap.requests.post")
def test_approle_login_empty_auth(mock_post):
    mock_post.return_value = login_response({"auth": None})
    with pytest.raises(KeyWrapError) as excinfo:
        approle_login("http://vault:8200", "approle", "role", "secret")
    assert "empty auth response" in str(excinfo.value)


@patch("security.key_wrap.requests.post")
def test_approle_login_http_error(mock_post):
    mock_post.return_value = login_response({"errors": ["invalid role ID"]}, status_code=400)
    with pytest.raises(KeyWrapError) as excinfo:
        approle_login("http://vault:8200", "approle", "role", "secret")
    assert excinfo.value.status_code == 400
    assert "auth/approle/login" in str(excinfo.value)


def test_new_client_and_token_hidden_from_repr():
    creds = VaultCredentials(address="http://vault:8200", token="s.secret", transit_engine="t2", timeout=3.0)
    client = creds.new_client()
    assert isinstance(client, VaultTransitClient)
    assert client.address == "http://vault:8200"
    assert client.engine_path == "t2"
    assert client.timeout == 3.0
    assert "s.secret" not in repr(creds)
