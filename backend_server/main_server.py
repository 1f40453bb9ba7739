from __future__ import annotations

import os
import threading
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from llm import LLMManager
from ocr_engine import TesseractOCR
from question_detector import DetectionOptions, QuestionDetector

USE_AI_SERVICE = os.getenv("INTERVIEWASSIST_USE_AI", "1") not in ("0", "false", "False")


class DetectRequest(BaseModel):
    """Either plain text or a data:image URL, plus detection options."""

    text: Optional[str] = None
    image: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)


app = FastAPI(title="InterviewAssist Detection Backend", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Lazy-loaded detector, one per process
_backend_lock = threading.Lock()
_detector: Optional[QuestionDetector] = None


def ensure_detector_initialized() -> QuestionDetector:
    """Build the detector and its collaborators on first use.

    Keeps the Ollama session and Tesseract setup out of import time so the
    server starts even when those services are down. Thread-safe.
    """
    global _detector
    if _detector is not None:
        return _detector

    with _backend_lock:
        if _detector is None:
            ai_service = LLMManager() if USE_AI_SERVICE else None
            _detector = QuestionDetector(ai_service=ai_service, ocr_service=TesseractOCR())
            print(f"[Backend] detector ready (ai={'on' if ai_service else 'off'})")
    return _detector


def set_detector(detector: Optional[QuestionDetector]):
    """Install a pre-built detector (or clear it so the next call rebuilds)."""
    global _detector
    with _backend_lock:
        _detector = detector


@app.post("/detect")
async def detect(request: DetectRequest):
    detector = ensure_detector_initialized()
    payload = request.image if request.image is not None else (request.text or "")
    try:
        options = DetectionOptions.from_value(request.options)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid options: {exc}") from exc
    result = await detector.detect(payload, options)
    return result.to_dict()


@app.get("/stats")
async def stats():
    return ensure_detector_initialized().get_stats()


@app.get("/context")
async def context():
    entries = ensure_detector_initialized().get_recent_context()
    return {"context": [entry.to_dict() for entry in entries]}


@app.post("/reset_stats")
async def reset_stats():
    ensure_detector_initialized().reset_stats()
    return {"status": "ok"}


@app.get("/health")
async def health():
    return await ensure_detector_initialized().health_check()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend_server.main_server:app", host="0.0.0.0", port=8000, reload=False)
