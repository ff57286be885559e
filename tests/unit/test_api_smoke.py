"""
Module 09 - API Smoke Tests

Tests for the FastAPI endpoints:
1. GET /health returns ok
2. GET /root and GET /proof/{address} serve a proof that replays
3. GET /members/{address} reports membership
4. POST /addresses and GET /stats require the owner key
5. Errors use the standard error envelope
"""

import pytest
from fastapi.testclient import TestClient

from api import __version__
from api.app import create_app
from core.config.runtime import ApiConfig, RuntimeConfig
from core.crypto.field import field_to_hex
from core.crypto.hashing import get_hasher
from core.merkle.proofs import ProofRecord, verify_proof_record

from fixtures import make_accumulator, make_address, make_addresses


OWNER_KEY = "secret"
OWNER_HEADERS = {"X-API-Key": OWNER_KEY}


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def accumulator():
    """Depth-3 tree holding three members."""
    return make_accumulator(depth=3, addresses=make_addresses(3))


@pytest.fixture
def client(accumulator):
    """Test client bound to the accumulator fixture."""
    config = RuntimeConfig(api=ApiConfig(owner_api_key=OWNER_KEY))
    return TestClient(create_app(accumulator=accumulator, config=config))


# =============================================================================
# Public Endpoints
# =============================================================================

class TestHealthEndpoint:
    """Tests for GET /health and GET /."""

    @pytest.mark.parametrize("path", ["/health", "/"])
    def test_health_returns_ok(self, client, path):
        response = client.get(path)

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["service"] == "allowlist-accumulator-api"
        assert data["version"] == __version__


class TestProofEndpoints:
    """Tests for GET /root, /proof/{address} and /members/{address}."""

    def test_root(self, client, accumulator):
        response = client.get("/root")

        assert response.status_code == 200
        assert response.json() == {"root": field_to_hex(accumulator.get_root())}

    def test_proof_replays(self, client, accumulator):
        response = client.get(f"/proof/{make_address(2)}")

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"siblings", "indices", "root", "leaf", "index"}
        assert data["index"] == 1
        assert data["indices"] == [1, 0, 0]
        assert data["root"] == field_to_hex(accumulator.get_root())
        assert verify_proof_record(ProofRecord.from_dict(data), get_hasher("sha256"))

    def test_proof_mixed_case_address(self, client):
        address = "0x" + "AB" * 20
        client.post("/addresses", json={"addresses": [address]}, headers=OWNER_HEADERS)

        response = client.get(f"/proof/{address}")

        assert response.status_code == 200
        assert response.json()["index"] == 3

    def test_proof_unknown_member(self, client):
        response = client.get(f"/proof/{make_address(99)}")

        assert response.status_code == 404
        data = response.json()
        assert data["ok"] is False
        assert data["error"]["code"] == "MEMBER_NOT_FOUND"

    def test_proof_malformed_address(self, client):
        response = client.get("/proof/0x1234")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ADDRESS"

    def test_membership(self, client):
        assert client.get(f"/members/{make_address(1)}").json()["member"] is True
        assert client.get(f"/members/{make_address(99)}").json()["member"] is False
        assert client.get("/members/garbage").json()["member"] is False


# =============================================================================
# Owner Endpoints
# =============================================================================

class TestOwnerAuth:
    """Tests for the X-API-Key guard."""

    @pytest.mark.parametrize("headers", [{}, {"X-API-Key": "wrong"}])
    def test_stats_rejected_without_key(self, client, headers):
        response = client.get("/stats", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_add_rejected_without_key(self, client, accumulator):
        response = client.post("/addresses", json={"addresses": [make_address(50)]})

        assert response.status_code == 401
        assert accumulator.next_index == 3

    def test_no_configured_key_rejects_everything(self, accumulator):
        client = TestClient(create_app(accumulator=accumulator, config=RuntimeConfig()))
        response = client.get("/stats", headers={"X-API-Key": ""})
        assert response.status_code == 401


class TestAddAddresses:
    """Tests for POST /addresses."""

    def test_add_new_addresses(self, client, accumulator):
        response = client.post(
            "/addresses",
            json={"addresses": [make_address(50), make_address(1), make_address(51)]},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["inserted"] == 2
        assert data["totalLeaves"] == 5
        assert data["skippedDuplicates"] == 1
        assert data["newRoot"] == field_to_hex(accumulator.get_root())

    def test_proofs_follow_new_root(self, client):
        client.post("/addresses", json={"addresses": [make_address(50)]}, headers=OWNER_HEADERS)

        root = client.get("/root").json()["root"]
        proof = client.get(f"/proof/{make_address(1)}").json()

        assert proof["root"] == root

    def test_malformed_entry_rejects_whole_request(self, client, accumulator):
        response = client.post(
            "/addresses",
            json={"addresses": [make_address(50), "0xnope", 7]},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_REQUEST"
        assert error["details"]["invalidAddresses"] == ["0xnope", "7"]
        assert accumulator.next_index == 3

    def test_only_duplicates(self, client):
        response = client.post(
            "/addresses",
            json={"addresses": [make_address(1)]},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No new addresses to add"

    def test_empty_list(self, client):
        response = client.post("/addresses", json={"addresses": []}, headers=OWNER_HEADERS)
        assert response.status_code == 400

    def test_missing_body_field(self, client):
        response = client.post("/addresses", json={}, headers=OWNER_HEADERS)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_capacity_exceeded(self, client, accumulator):
        response = client.post(
            "/addresses",
            json={"addresses": make_addresses(6, start=100)},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CAPACITY_EXCEEDED"
        assert accumulator.next_index == 3


class TestStats:
    """Tests for GET /stats."""

    def test_stats(self, client, accumulator):
        response = client.get("/stats", headers=OWNER_HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "root": field_to_hex(accumulator.get_root()),
            "leafCount": 3,
            "maxLeaves": 8,
        }
