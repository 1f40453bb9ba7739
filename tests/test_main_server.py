"""Tests for the FastAPI detection backend."""

import pytest
from fastapi.testclient import TestClient

from backend_server import main_server
from conftest import BEHAVIORAL_QUESTION, FakeOCRService
from question_detector import QuestionDetector


@pytest.fixture
def client(fixed_clock):
    main_server.set_detector(QuestionDetector(ocr_service=FakeOCRService(), clock=fixed_clock))
    yield TestClient(main_server.app)
    main_server.set_detector(None)


def test_detect_text(client):
    response = client.post("/detect", json={"text": BEHAVIORAL_QUESTION, "options": {"useAI": False}})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["type"] == "behavioral"
    assert body["question"] == BEHAVIORAL_QUESTION
    assert "conflict_resolution" in body["subCategories"]
    assert body["processingTimeMs"] == 0


def test_detect_image_with_empty_ocr(client):
    response = client.post("/detect", json={"image": "data:image/png;base64,AAAA"})

    assert response.status_code == 200
    assert response.json()["type"] == "no_text"


@pytest.mark.parametrize("options", [{"confidenceThreshold": "high"}, {"useAI": "false"}])
def test_invalid_options_are_rejected(client, options):
    response = client.post("/detect", json={"text": BEHAVIORAL_QUESTION, "options": options})

    assert response.status_code == 422
    assert response.json()["detail"].startswith("Invalid options")


def test_stats_context_and_reset(client):
    client.post("/detect", json={"text": BEHAVIORAL_QUESTION, "options": {"useAI": False}})

    stats = client.get("/stats").json()
    assert stats["totalQuestions"] == 1
    assert stats["ocrServiceAvailable"] is True

    context = client.get("/context").json()["context"]
    assert len(context) == 1
    assert context[0]["types"] == ["behavioral"]

    assert client.post("/reset_stats").json() == {"status": "ok"}
    assert client.get("/stats").json()["totalQuestions"] == 0
    assert len(client.get("/context").json()["context"]) == 1


def test_health(client):
    health = client.get("/health").json()

    assert health["status"] == "healthy"
    assert health["selfTestResult"] == "passed"
    assert health["services"]["ocr"] == "available"
