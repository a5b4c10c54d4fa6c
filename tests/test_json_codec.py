import base64
import json
import re

import pytest

from core.encryptor import EncryptOptions, EnvelopeEncryptor, encrypt_to_json
from core.errors import InputFormatError, SerializationError
from formats import JsonCodec, get_codec
from sops_helpers import NESTED_CONTENT, is_enc


def test_parse_preserves_key_order():
    tree = JsonCodec().parse('{"z": 1, "a": {"y": 2, "b": 3}, "m": [1, 2]}')
    assert list(tree) == ["z", "a", "m"]
    assert list(tree["a"]) == ["y", "b"]


def test_parse_error_reports_position_and_fragment():
    with pytest.raises(InputFormatError) as excinfo:
        JsonCodec().parse('{"database": {"host": }}')
    message = str(excinfo.value)
    assert "line 1" in message
    assert excinfo.value.fragment is not None
    assert '"host": }' in excinfo.value.fragment


def test_parse_rejects_duplicate_keys():
    with pytest.raises(InputFormatError) as excinfo:
        JsonCodec().parse('{"a": 1, "a": 2}')
    assert "duplicate key" in str(excinfo.value)


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_parse_rejects_non_finite_numbers(constant):
    with pytest.raises(InputFormatError):
        JsonCodec().parse('{"a": %s}' % constant)


def test_parse_rejects_already_encrypted_documents():
    with pytest.raises(InputFormatError):
        JsonCodec().parse('{"a": 1, "sops": {"version": "3.9.4"}}')


def test_compact_output_is_single_line(key_wrap_client):
    output = encrypt_to_json(key_wrap_client, "app", NESTED_CONTENT)
    assert "\n" not in output
    assert output.startswith('{"database":{"host":"ENC[')


def test_pretty_output_uses_two_space_indent(key_wrap_client):
    output = encrypt_to_json(key_wrap_client, "app", NESTED_CONTENT, EncryptOptions(pretty_json=True))
    lines = output.splitlines()
    assert lines[0] == "{"
    assert lines[1] == '  "database": {'
    assert lines[2].startswith('    "host": "ENC[')
    assert json.loads(output)["database"]["host"].startswith("ENC[")


def test_output_keeps_structure_and_appends_sops_last(key_wrap_client):
    content = json.dumps(
        {"zeta": {"b": [1, 2, {"c": "d"}], "a": "x"}, "alpha": [], "empty": {}, "n": None}
    )
    doc = json.loads(encrypt_to_json(key_wrap_client, "app", content))

    assert list(doc) == ["zeta", "alpha", "empty", "n", "sops"]
    assert list(doc["zeta"]) == ["b", "a"]
    assert len(doc["zeta"]["b"]) == 3
    assert list(doc["zeta"]["b"][2]) == ["c"]
    assert doc["alpha"] == []
    assert doc["empty"] == {}
    assert doc["n"] is None


def test_sops_metadata_layout(key_wrap_client):
    doc = json.loads(encrypt_to_json(key_wrap_client, "app", NESTED_CONTENT))
    sops = doc["sops"]

    assert list(sops) == ["hc_vault", "lastmodified", "mac", "version"]
    assert sops["version"] == "3.9.4"
    assert re.match(r"^\d{4}-\d\d-\d\dT\d\d:\d\d:\d\dZ$", sops["lastmodified"])
    assert is_enc(sops["mac"])

    entry = sops["hc_vault"][0]
    assert list(entry) == ["vault_address", "engine_path", "key_name", "created_at", "enc"]
    assert entry["vault_address"] == "http://127.0.0.1:8200"
    assert entry["engine_path"] == "transit"
    assert entry["created_at"] == sops["lastmodified"]
    assert len(base64.b64decode(entry["enc"][len("vault:v1:"):])) == 32


def test_scope_field_written_between_mac_and_version(key_wrap_client):
    doc = json.loads(
        encrypt_to_json(key_wrap_client, "app", NESTED_CONTENT, EncryptOptions(unencrypted_suffix="_plain"))
    )
    assert list(doc["sops"]) == ["hc_vault", "lastmodified", "mac", "unencrypted_suffix", "version"]
    assert doc["sops"]["unencrypted_suffix"] == "_plain"


def test_non_mapping_top_level_cannot_be_serialized(key_wrap_client):
    with pytest.raises(SerializationError):
        encrypt_to_json(key_wrap_client, "app", '["a", "b"]')


def test_non_finite_plaintext_float_cannot_be_serialized(key_wrap_client):
    tree, metadata = EnvelopeEncryptor(key_wrap_client).encrypt(
        {"ratio": float("nan"), "token_enc": "t"}, "app", EncryptOptions(encrypted_suffix="_enc")
    )
    with pytest.raises(SerializationError):
        JsonCodec().serialize(tree, metadata)


def test_non_ascii_is_written_verbatim(key_wrap_client):
    output = encrypt_to_json(
        key_wrap_client, "app", '{"name": "Zoë", "secret_enc": "x"}', EncryptOptions(encrypted_suffix="_enc")
    )
    assert '"name":"Zoë"' in output


def test_codec_lookup():
    assert get_codec("JSON").name == "json"
    assert get_codec("yml").name == "yaml"
