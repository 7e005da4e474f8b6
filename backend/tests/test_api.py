"""
Risk API Tests
HTTP surface over a mocked pipeline: validation, batch limits, health

Run: python -m pytest tests/test_api.py -v
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from infrastructure.errors import ResolutionFailureError
from main import create_app

ADDRESS = "0x1234567890abcdef1234567890abcdef12345678"
RECORD = {"risk_score": 12, "risk_level": "low", "confidence": 0.9, "vulnerabilities": []}


@pytest.fixture
def pipeline():
    mock = AsyncMock()
    mock.analyze.return_value = RECORD
    mock.analyze_batch.return_value = {"batch_size": 1, "successful": 1, "failed": 0, "results": []}
    mock.health.return_value = {"status": "ok", "version": "1.0.0", "services": {}}
    return mock


@pytest.fixture
def client(pipeline):
    return TestClient(create_app(pipeline=pipeline))


class TestAnalyzeEndpoint:

    def test_returns_record(self, client, pipeline):
        response = client.post("/analyze", json={"contract_address": ADDRESS, "chain": "base", "scan_depth": "deep"})

        assert response.status_code == 200
        assert response.json() == RECORD
        pipeline.analyze.assert_awaited_once_with(ADDRESS, "base", "deep")

    def test_defaults_to_quick_ethereum(self, client, pipeline):
        client.post("/analyze", json={"contract_address": ADDRESS})
        pipeline.analyze.assert_awaited_once_with(ADDRESS, "ethereum", "quick")

    def test_address_is_normalized(self, client, pipeline):
        client.post("/analyze", json={"contract_address": ADDRESS.replace("abcdef", "ABCDEF")})
        pipeline.analyze.assert_awaited_once_with(ADDRESS, "ethereum", "quick")

    @pytest.mark.parametrize("address", ["0x123", "1234567890abcdef1234567890abcdef12345678", "0xZZ34567890abcdef1234567890abcdef12345678"])
    def test_invalid_address_is_400(self, client, pipeline, address):
        response = client.post("/analyze", json={"contract_address": address})
        body = response.json()

        assert response.status_code == 400
        assert body["success"] is False
        assert body["error"]["message"] == "Invalid input"
        assert body["error"]["details"][0]["field"] == "contract_address"
        pipeline.analyze.assert_not_awaited()

    def test_unsupported_chain_is_400(self, client):
        response = client.post("/analyze", json={"contract_address": ADDRESS, "chain": "solana"})
        assert response.status_code == 400

    def test_missing_address_is_400(self, client):
        assert client.post("/analyze", json={}).status_code == 400

    def test_resolution_failure_is_500(self, client, pipeline):
        pipeline.analyze.side_effect = ResolutionFailureError(ADDRESS, "ethereum", "No data source", ["failed"])
        response = client.post("/analyze", json={"contract_address": ADDRESS})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "RESOLUTION_FAILED"


class TestBatchEndpoint:

    def test_batch_is_forwarded(self, client, pipeline):
        response = client.post("/analyze-batch", json={"contracts": [ADDRESS], "scan_depth": "deep"})

        assert response.status_code == 200
        pipeline.analyze_batch.assert_awaited_once_with([ADDRESS], "ethereum", "deep")

    def test_too_many_contracts(self, client, pipeline):
        response = client.post("/analyze-batch", json={"contracts": [ADDRESS] * 11})
        body = response.json()

        assert response.status_code == 400
        assert body["error"]["message"] == "Batch too large"
        assert body["error"]["details"]["limit"] == 10
        assert body["error"]["details"]["received"] == 11
        pipeline.analyze_batch.assert_not_awaited()

    def test_exactly_the_limit_is_accepted(self, client):
        assert client.post("/analyze-batch", json={"contracts": [ADDRESS] * 10}).status_code == 200

    def test_empty_batch_is_400(self, client):
        assert client.post("/analyze-batch", json={"contracts": []}).status_code == 400

    def test_one_bad_address_rejects_the_batch(self, client, pipeline):
        response = client.post("/analyze-batch", json={"contracts": [ADDRESS, "0xnope"]})

        assert response.status_code == 400
        pipeline.analyze_batch.assert_not_awaited()


class TestServiceEndpoints:

    def test_health_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health_degraded_is_503(self, client, pipeline):
        pipeline.health.return_value = {"status": "degraded", "version": "1.0.0", "services": {}}
        assert client.get("/health").status_code == 503

    def test_service_info(self, client):
        info = client.get("/").json()

        assert info["name"] == "Contract Risk Scorer"
        assert info["max_batch_size"] == 10
        assert set(info["scan_depths"]) == {"quick", "deep"}
        assert "ethereum" in info["supported_chains"]
