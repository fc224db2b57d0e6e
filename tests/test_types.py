"""Tests for boundary messages and configuration."""

import base64
import json

import pytest

from opaque_client import (
    ClientConfig,
    ConfigError,
    Envelope,
    RegistrationClient,
    RegistrationRecord,
    RegistrationRequest,
    RegistrationResponse,
    ValidationError,
)


def test_record_json_layout():
    record = RegistrationRecord(
        username="alice",
        public_key=b"\x01" * 32,
        envelope=Envelope(ciphertext=b"\x02" * 112, nonce=b"\x03" * 24),
    )

    d = json.loads(record.to_json())

    assert d["username"] == "alice"
    assert base64.b64decode(d["publicKey"]) == b"\x01" * 32
    assert base64.b64decode(d["envelope"]["ciphertext"]) == b"\x02" * 112
    assert base64.b64decode(d["envelope"]["nonce"]) == b"\x03" * 24
    assert RegistrationRecord.from_json(record.to_json()) == record


def test_response_json_layout():
    response = RegistrationResponse(
        response=b"\x02" * 33,
        oprf_public_key=b"\x03" * 33,
        server_public_key=b"\x04" * 32,
        hash_ops_limit=2,
        hash_mem_limit=65536,
        hash_salt=bytes(16),
    )

    d = json.loads(response.to_json())

    assert set(d) == {
        "response", "oprfPublicKey", "serverPublicKey", "hashOpsLimit", "hashMemLimit", "hashSalt",
    }
    assert RegistrationResponse.from_json(response.to_json()) == response


def test_request_from_json():
    request = RegistrationRequest.from_json(b'{"username": "alice", "challenge": "AAEC"}')
    assert request == RegistrationRequest(username="alice", challenge=b"\x00\x01\x02")


@pytest.mark.parametrize("payload, field", [
    (b'{"challenge": "AAEC"}', "username"),
    (b'{"username": 7, "challenge": "AAEC"}', "username"),
    (b'{"username": "alice", "challenge": "not base64!"}', "challenge"),
    (b'{"username": "alice", "challenge": 12}', "challenge"),
])
def test_request_rejects_malformed_fields(payload, field):
    with pytest.raises(ValidationError) as excinfo:
        RegistrationRequest.from_json(payload)
    assert excinfo.value.field == field


@pytest.mark.parametrize("payload", [b"not json", b"[1, 2]", b"\xff\xfe"])
def test_rejects_non_object_payloads(payload):
    with pytest.raises(ValidationError):
        RegistrationRecord.from_json(payload)


def test_response_rejects_boolean_limit():
    d = json.loads(RegistrationResponse(
        response=b"\x02" * 33,
        oprf_public_key=b"\x03" * 33,
        server_public_key=b"\x04" * 32,
        hash_ops_limit=2,
        hash_mem_limit=65536,
        hash_salt=bytes(16),
    ).to_json())
    d["hashOpsLimit"] = True

    with pytest.raises(ValidationError) as excinfo:
        RegistrationResponse.from_json(json.dumps(d).encode())
    assert excinfo.value.field == "hashOpsLimit"


def test_record_rejects_bad_envelope():
    payload = json.dumps({"username": "alice", "publicKey": "AAEC", "envelope": "AAEC"}).encode()
    with pytest.raises(ValidationError) as excinfo:
        RegistrationRecord.from_json(payload)
    assert excinfo.value.field == "envelope"


def test_config_validation():
    ClientConfig().validate()
    assert ClientConfig.strict().allow_retry_after_validation_error is False

    with pytest.raises(ConfigError):
        ClientConfig(max_ops_limit=0).validate()
    with pytest.raises(ConfigError):
        ClientConfig(max_mem_limit=1024).validate()
    with pytest.raises(ConfigError):
        RegistrationClient(config=ClientConfig(max_ops_limit=0))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
