"""Integration tests for the course document and query endpoints."""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock, patch
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))


@pytest.fixture
def client():
    """Create a test client with mocked services."""
    # Import after path is set
    from main import app
    from services.document_registry import InMemoryDocumentRegistry

    # Mock the startup event to avoid initializing real services
    with patch('main.startup_event'):
        client = TestClient(app)

        # Manually set the global services
        import main
        main.document_registry = InMemoryDocumentRegistry()
        main.ingestion_service = Mock()
        main.answer_synthesizer = Mock()

        yield client


@pytest.fixture
def answer():
    """A grounded answer returned by the mocked synthesizer."""
    import main
    from models.answer import Answer

    result = Answer(
        text="Mitosis produces two identical daughter cells.",
        source_refs=["lecture-03", "lab-02"],
        chunks_used=4,
        grounded=True,
        degraded=False,
    )
    main.answer_synthesizer.answer.return_value = result
    return result


def test_ingest_document_accepted(client):
    """Upload registration returns immediately and schedules ingestion."""
    import main

    response = client.post(
        "/courses/bio101/documents",
        json={
            "document_id": "lecture-03",
            "storage_location": "course-materials/bio101/lecture-03.pdf",
            "media_type": "application/pdf",
        }
    )

    assert response.status_code == 202
    data = response.json()
    assert data["status"] == "processing"
    assert data["document_id"] == "lecture-03"

    # Background tasks run once the response is sent
    main.ingestion_service.ingest.assert_called_once_with(
        "bio101", "lecture-03", "course-materials/bio101/lecture-03.pdf", "application/pdf"
    )
    assert main.document_registry.get("bio101", "lecture-03") is not None


def test_ingest_document_requires_location(client):
    response = client.post("/courses/bio101/documents", json={"document_id": "lecture-03"})

    assert response.status_code == 422


def test_ingest_document_registry_unavailable(client):
    import main
    from services.vector_store import StorageError

    main.document_registry = Mock()
    main.document_registry.mark_processing.side_effect = StorageError("offline")

    response = client.post(
        "/courses/bio101/documents",
        json={"document_id": "lecture-03", "storage_location": "a.pdf"}
    )

    assert response.status_code == 503
    main.ingestion_service.ingest.assert_not_called()


def test_document_status(client):
    import main

    response = client.get("/courses/bio101/documents/lecture-03")
    assert response.status_code == 404

    main.document_registry.mark_processing("bio101", "lecture-03", "a.pdf", "application/pdf")
    main.document_registry.mark_failed("bio101", "lecture-03", "Could not extract text or text is too short")

    response = client.get("/courses/bio101/documents/lecture-03")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "failed"
    assert data["chunk_count"] == 0
    assert "too short" in data["error"]


def test_reingest_known_document(client):
    import main

    main.document_registry.mark_processing("bio101", "lecture-03", "course-materials/bio101/l3.md", "text/markdown")
    main.document_registry.mark_failed("bio101", "lecture-03", "provider down")

    response = client.post("/courses/bio101/documents/lecture-03/reingest")

    assert response.status_code == 202
    main.ingestion_service.ingest.assert_called_once_with(
        "bio101", "lecture-03", "course-materials/bio101/l3.md", "text/markdown"
    )


def test_reingest_unknown_document(client):
    import main

    response = client.post("/courses/bio101/documents/missing/reingest")

    assert response.status_code == 404
    main.ingestion_service.ingest.assert_not_called()


def test_delete_document_chunks(client):
    import main

    main.ingestion_service.delete_chunks.return_value = 7

    response = client.delete("/courses/bio101/documents/lecture-03/chunks")

    assert response.status_code == 200
    assert response.json() == {"document_id": "lecture-03", "deleted": 7}
    main.ingestion_service.delete_chunks.assert_called_once_with("bio101", "lecture-03")


def test_chat_endpoint(client, answer):
    """Chat answers with the conversational retrieval depth."""
    import main

    response = client.post("/courses/bio101/chat", json={"question": "What does mitosis produce?"})

    assert response.status_code == 200
    data = response.json()
    assert data["answer"] == answer.text
    assert data["sources"] == ["lecture-03", "lab-02"]
    assert data["chunks_used"] == 4
    assert data["grounded"] is True
    assert data["degraded"] is False
    main.answer_synthesizer.answer.assert_called_once_with("What does mitosis produce?", "bio101", top_k=4)


def test_notebook_query_endpoint(client, answer):
    """Notebook queries retrieve one more chunk than chat by default."""
    import main

    response = client.post("/courses/bio101/notebook/query", json={"question": "Summarize mitosis"})

    assert response.status_code == 200
    main.answer_synthesizer.answer.assert_called_once_with("Summarize mitosis", "bio101", top_k=5)


def test_query_with_explicit_top_k(client, answer):
    import main

    response = client.post("/courses/bio101/chat", json={"question": "Mitosis?", "top_k": 8})

    assert response.status_code == 200
    main.answer_synthesizer.answer.assert_called_once_with("Mitosis?", "bio101", top_k=8)


def test_query_rejects_invalid_top_k(client, answer):
    response = client.post("/courses/bio101/chat", json={"question": "Mitosis?", "top_k": 0})

    assert response.status_code == 422


def test_query_empty_question(client, answer):
    """Blank questions are rejected before any retrieval."""
    import main

    response = client.post("/courses/bio101/chat", json={"question": "   "})

    assert response.status_code == 400
    main.answer_synthesizer.answer.assert_not_called()


def test_degraded_answer_is_still_200(client):
    import main
    from models.answer import Answer
    from services.answer_synthesizer import APOLOGY_MESSAGE

    main.answer_synthesizer.answer.return_value = Answer(text=APOLOGY_MESSAGE, degraded=True)

    response = client.post("/courses/bio101/notebook/query", json={"question": "Anything?"})

    assert response.status_code == 200
    data = response.json()
    assert data["answer"] == APOLOGY_MESSAGE
    assert data["sources"] == []
    assert data["degraded"] is True


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
