"""
Tests for the facilitator HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from a402.server import create_app
from conftest import NOW, OTHER_RELAYER, RELAYER_CONTRACT, make_request_body, sign_authorization


@pytest.fixture
def client(facilitator):
    return TestClient(create_app(facilitator))


def test_verify_settle_replay_on_fuji(client, payer_address, fake_signer):
    body = make_request_body(sign_authorization(chain_id=43113), network="eip155:43113")

    response = client.post("/verify", json=body)
    assert response.status_code == 200
    assert response.json() == {"isValid": True, "payer": payer_address}

    response = client.post("/settle", json=body)
    assert response.status_code == 200
    settled = response.json()
    assert settled["success"] is True
    assert settled["transaction"].startswith("0x")
    assert settled["payer"] == payer_address
    assert settled["network"] == "eip155:43113"
    assert "errorReason" not in settled

    response = client.post("/settle", json=body)
    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["errorReason"] == "Nonce already used"
    assert len(fake_signer.writes) == 1


def test_verify_expired(client):
    body = make_request_body(sign_authorization(valid_before=NOW - 1))
    response = client.post("/verify", json=body)
    assert response.status_code == 200
    assert response.json() == {"isValid": False, "invalidReason": "Authorization expired"}


def test_verify_malformed_payload_is_400(client):
    payload = sign_authorization()
    payload["signature"] = "0x1234"
    response = client.post("/verify", json=make_request_body(payload))
    assert response.status_code == 400
    assert response.json() == {
        "isValid": False,
        "invalidReason": "Invalid authorization: missing or malformed fields",
    }


@pytest.mark.parametrize("path", ["/verify", "/settle"])
def test_unparseable_body_is_400(client, path):
    response = client.post(path, json={"paymentPayload": "nope"})
    assert response.status_code == 400
    if path == "/settle":
        assert response.json()["success"] is False
    else:
        assert response.json()["isValid"] is False


def test_unknown_network_is_400(client):
    body = make_request_body(sign_authorization(), network="eip155:1")
    response = client.post("/settle", json=body)
    assert response.status_code == 400
    assert response.json() == {"success": False, "errorReason": "Unknown network: eip155:1"}


def test_settle_foreign_relayer_contract_is_400(client, fake_signer):
    payload = sign_authorization(verifying_contract=OTHER_RELAYER)
    body = make_request_body(payload, relayer_contract=OTHER_RELAYER)
    response = client.post("/settle", json=body)
    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "errorReason": "Invalid authorization: missing or malformed fields",
    }
    assert fake_signer.writes == []


def test_chain_read_failure_is_500(client, fake_signer):
    fake_signer.fail_reads = True
    body = make_request_body(sign_authorization())

    response = client.post("/verify", json=body)
    assert response.status_code == 500
    assert response.json() == {"isValid": False, "invalidReason": "Verification failed"}

    response = client.post("/settle", json=body)
    assert response.status_code == 500
    assert response.json() == {"success": False, "errorReason": "Settlement failed"}


def test_list(client):
    response = client.get("/list")
    assert response.status_code == 200
    data = response.json()
    assert data["facilitator"] == "a402"
    network = data["networks"][0]
    assert network["chainId"] == 43113
    assert network["relayerContract"] == RELAYER_CONTRACT
    assert network["supportedAssets"][0]["symbol"] == "USDT"


def test_health_and_info(client, fake_signer):
    health = client.get("/health").json()
    assert health == {
        "status": "healthy",
        "service": "a402-facilitator",
        "network": "avalanche-testnet",
        "relayer": fake_signer.address,
    }

    info = client.get("/").json()
    assert info["chainId"] == 43113
    assert "/settle" in info["endpoints"]


def test_metrics(client):
    client.post("/verify", json=make_request_body(sign_authorization()))
    response = client.get("/metrics")
    assert response.status_code == 200
    text = response.text
    assert 'b402_verify_requests_total{status="success"} 1.0' in text
    assert 'http_request_duration_seconds_count{method="POST",route="/verify",status="200"}' in text
    assert "python_info" in text


def test_rate_limit_per_client(client):
    for _ in range(100):
        assert client.get("/health").status_code == 200

    response = client.get("/health")
    assert response.status_code == 429
    assert response.json() == {"error": "Too many requests, please try again later"}


def test_rate_limit_is_shared_across_routes(facilitator):
    client = TestClient(create_app(facilitator, rate_limit="3/minute"))
    assert client.get("/health").status_code == 200
    assert client.get("/list").status_code == 200
    assert client.post("/verify", json=make_request_body(sign_authorization())).status_code == 200

    response = client.post("/settle", json=make_request_body(sign_authorization()))
    assert response.status_code == 429
