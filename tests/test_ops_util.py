"""
Tests for the operations CLI.
"""

import json
from unittest.mock import patch

import pytest

from groupware_rag.core.config import ProviderSettings
from groupware_rag.core.document_store import DocumentStore
from groupware_rag.core.ingest_queue import IngestQueue
from scripts.ops_util import main


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "rag.db")
    queue = IngestQueue(path)
    failed = queue.enqueue("alice", "wiki", "1")
    queue.claim(failed)
    queue.mark_failed(failed, "No record adapter registered for source app 'wiki'")
    queue.enqueue("alice", "addressbook", "2")
    DocumentStore(path).upsert("alice", "2", "addressbook", "Contact: Bob", [1.0])
    return path


def test_status_json(capfd, db_path):
    main(["--db-path", db_path, "status", "--owner", "alice", "--json"])

    result = json.loads(capfd.readouterr().out)
    assert result["db_health"] is True
    assert result["queue"]["failed"] == 1
    assert result["queue"]["pending"] == 1
    assert result["documents"] == {"addressbook": 1}


def test_failed_listing(capfd, db_path):
    main(["--db-path", db_path, "failed"])
    assert "alice wiki/1 index: No record adapter" in capfd.readouterr().out


def test_requeue_failed(capfd, db_path):
    main(["--db-path", db_path, "requeue-failed"])
    assert "✓ Requeued 1 failed items" in capfd.readouterr().out
    assert IngestQueue(db_path).count_by_status()["pending"] == 2


def test_clear_forced(capfd, db_path):
    main(["--db-path", db_path, "clear", "--owner", "alice", "--force"])
    assert "✓ Removed 1 documents" in capfd.readouterr().out
    assert DocumentStore(db_path).count_by_source_app("alice") == {}


def test_no_command_exits():
    with pytest.raises(SystemExit):
        main([])


def test_config_status_masks_key(capfd, monkeypatch):
    monkeypatch.setenv("RAG_EMBEDDING_API_KEY", "sk-secret-value")
    monkeypatch.delenv("RAG_EMBEDDING_API_URL", raising=False)

    main(["config"])

    out = capfd.readouterr().out
    assert "Embedding API Key:  ✓ SET (15 chars)" in out
    assert "Embedding API URL:  ✗ NOT SET" in out
    assert "sk-secret-value" not in out


def test_connection_success(capfd):
    settings = ProviderSettings(embedding_provider="hash", embedding_model="all-MiniLM-L6-v2")
    with patch('scripts.ops_util.settings_from_env', return_value=settings):
        main(["test-connection"])

    out = capfd.readouterr().out
    assert "✓ SUCCESS! Connection is working." in out
    assert "Embedding dimension: 384" in out


def test_connection_failure_exits(capfd):
    with patch('scripts.ops_util.settings_from_env', return_value=ProviderSettings()):
        with pytest.raises(SystemExit) as exc_info:
            main(["test-connection"])

    assert exc_info.value.code == 1
    assert "✗ ERROR (not_configured)" in capfd.readouterr().out
