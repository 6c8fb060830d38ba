"""
Tests for the HTTP API.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from groupware_rag.adapters.contacts import ContactAdapter
from groupware_rag.adapters.registry import AdapterRegistry
from groupware_rag.adapters.sources import DictRecordSource
from groupware_rag.api.main import _extract_user_id, create_app
from groupware_rag.core.config import ProviderSettings
from groupware_rag.core.errors import ConfigurationError, EmbeddingProviderError, UNAUTHORIZED
from groupware_rag.core.services import build_services
from groupware_rag.vector.embeddings import DeterministicHashEmbedding

ALICE = {"X-User-Id": "alice"}


@pytest.fixture
def contacts():
    return DictRecordSource({
        "alice": {
            "1": {"contact_id": "1", "n_given": "Ann", "n_family": "Lee", "org_name": "Acme"},
            "2": {"contact_id": "2", "n_fn": "Bob Stone"},
        }
    })


@pytest.fixture
def services(tmp_path, contacts):
    registry = AdapterRegistry()
    registry.register(ContactAdapter(contacts))
    return build_services(
        db_path=str(tmp_path / "rag.db"),
        settings=ProviderSettings(),
        registry=registry,
        embedder=DeterministicHashEmbedding(dimension=16),
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services))


def test_extract_user_id():
    assert _extract_user_id({"x-user-id": "bob"}) == "bob"
    assert _extract_user_id({"x-user-id": ""}) == "default"
    assert _extract_user_id({}) == "default"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["db_health"] is True
    assert body["source_apps"] == ["addressbook"]


def test_hook_drain_search_flow(client):
    assert client.post("/hooks/addressbook/1", headers=ALICE).json()["queued"] is True
    assert client.post("/hooks/addressbook/2", headers=ALICE).status_code == 200

    drain = client.post("/queue/drain", headers=ALICE, json={"batch_size": 10})
    assert drain.status_code == 200
    assert drain.json()["completed"] == 2

    response = client.post("/search", headers=ALICE, json={"query": "Contact: Ann Lee\nOrganization: Acme"})
    assert response.status_code == 200
    body = response.json()
    assert body["results"][0]["doc_id"] == "1"
    assert body["results"][0]["score"] == pytest.approx(1.0)
    assert body["summary"].startswith("Based on the available data:")


def test_search_scoped_to_header_owner(client):
    client.post("/hooks/addressbook/1", headers=ALICE)
    client.post("/queue/drain", headers=ALICE)

    response = client.post("/search", json={"query": "Ann"})
    assert response.status_code == 200
    assert response.json()["results"] == []
    assert response.json()["summary"] is None


def test_delete_hook(client, services):
    client.post("/hooks/addressbook/1", headers=ALICE)
    client.post("/queue/drain", headers=ALICE)

    response = client.post("/hooks/addressbook/1?deleted=true", headers=ALICE)
    assert response.json()["action"] == "delete"
    client.post("/queue/drain", headers=ALICE)

    assert services.store.get("alice", "1", "addressbook") is None


def test_unknown_source_app_hook(client):
    assert client.post("/hooks/wiki/1", headers=ALICE).status_code == 404


def test_empty_query_is_400(client):
    response = client.post("/search", headers=ALICE, json={"query": "   "})
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_embedding_error_is_502(services):
    embedder = MagicMock()
    embedder.embed_text.side_effect = EmbeddingProviderError("auth failed", reason=UNAUTHORIZED, status_code=401)
    services.engine._embedder = embedder
    client = TestClient(create_app(services))

    response = client.post("/search", headers=ALICE, json={"query": "Ann"})
    assert response.status_code == 502
    assert response.json()["detail"] == "auth failed"


def test_configuration_error_is_503(services):
    embedder = MagicMock()
    embedder.embed_text.side_effect = ConfigurationError("Embedding API key not configured")
    services.engine._embedder = embedder
    client = TestClient(create_app(services))

    response = client.post("/search", headers=ALICE, json={"query": "Ann"})
    assert response.status_code == 503
    assert response.json() == {"error": "ConfigurationError", "detail": "Embedding API key not configured"}


def test_stats(client):
    client.post("/index/addressbook", headers=ALICE)

    body = client.get("/stats", headers=ALICE).json()
    assert body == {"total": 2, "by_app": {"addressbook": 2}, "source_counts": {"addressbook": 2}}


def test_reindex_endpoint(client):
    response = client.post("/index/addressbook", headers=ALICE)
    assert response.status_code == 200
    assert response.json()["indexed"] == 2
    assert response.json()["success"] is True


def test_reindex_unknown_source_app(client):
    assert client.post("/index/wiki", headers=ALICE).status_code == 404


def test_clear_index(client):
    client.post("/index/addressbook", headers=ALICE)
    assert client.delete("/index", headers=ALICE).json() == {"removed": 2}
    assert client.get("/stats", headers=ALICE).json()["total"] == 0


def test_queue_status_failed_and_requeue(client, services):
    services.queue.enqueue("alice", "wiki", "1")
    client.post("/queue/drain", headers=ALICE)

    status = client.get("/queue/status", headers=ALICE).json()
    assert status["counts"]["failed"] == 1

    failed = client.get("/queue/failed", headers=ALICE).json()["items"]
    assert failed[0]["source_app"] == "wiki"
    assert "wiki" in failed[0]["error_message"]

    assert client.post("/queue/requeue-failed", headers=ALICE).json() == {"requeued": 1}
    assert client.get("/queue/status", headers=ALICE).json()["counts"]["pending"] == 1


def test_drain_without_body(client):
    client.post("/hooks/addressbook/1", headers=ALICE)
    response = client.post("/queue/drain", headers=ALICE)
    assert response.status_code == 200
    assert response.json()["claimed"] == 1


def test_config_status_hides_keys(tmp_path):
    services = build_services(
        db_path=str(tmp_path / "rag.db"),
        settings=ProviderSettings(embedding_api_key="sk-secret-value", embedding_api_url="https://api.example.test/v1"),
        registry=AdapterRegistry(),
        embedder=DeterministicHashEmbedding(dimension=4),
    )
    response = TestClient(create_app(services)).get("/config/status")

    assert response.status_code == 200
    body = response.json()
    assert body["embedding"]["api_key_set"] is True
    assert body["embedding"]["api_key_chars"] == 15
    assert body["llm"]["api_key_set"] is False
    assert "sk-secret-value" not in response.text


def test_config_test_success(client):
    response = client.post("/config/test")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["dimension"] == 16


def test_config_test_reports_provider_failure(services):
    embedder = MagicMock()
    embedder.embed_text.side_effect = EmbeddingProviderError("auth failed", reason=UNAUTHORIZED, status_code=401)
    services.pipeline._embedder = embedder

    response = TestClient(create_app(services)).post("/config/test")

    assert response.status_code == 200
    body = response.json()
    assert (body["success"], body["reason"], body["status_code"]) == (False, "unauthorized", 401)


def test_config_test_reports_missing_settings(tmp_path):
    services = build_services(db_path=str(tmp_path / "rag.db"), settings=ProviderSettings(), registry=AdapterRegistry())

    body = TestClient(create_app(services)).post("/config/test").json()

    assert body["success"] is False
    assert body["reason"] == "not_configured"
