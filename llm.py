"""
Large Language Model Client for InterviewAssist

Provides the AI collaborator used to re-score and correct detected
interview questions. Talks to an Ollama-hosted model over its REST API with
a single non-streaming request per call.

Key Features:
- Persistent HTTP session for connection reuse
- Low-temperature generation for consistent, parseable JSON answers
- Prompt length guard
- Latency metrics printed per request
- Optional model warm-up at construction

Configuration:
- Model selection via INTERVIEWASSIST_MODEL environment variable
- Ollama endpoint via OLLAMA_ENDPOINT environment variable
- Request timeout via INTERVIEWASSIST_AI_TIMEOUT environment variable
- Prompt size guard via INTERVIEWASSIST_PROMPT_CHARS environment variable

Dependencies:
- requests: HTTP client for Ollama API communication

Author: Quinn Evans
"""

import os
import time
from typing import Optional

import requests

from errors import AIEnhancementFailure

OLLAMA_ENDPOINT = os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434/api/generate")
DEFAULT_MODEL = os.getenv("INTERVIEWASSIST_MODEL", "llama3.2:3b")
REQUEST_TIMEOUT = float(os.getenv("INTERVIEWASSIST_AI_TIMEOUT", "8"))
MAX_PROMPT_CHARS = int(os.getenv("INTERVIEWASSIST_PROMPT_CHARS", "4000"))

# Generation parameters tuned for short structured answers
DEFAULT_OPTIONS = {
    "num_predict": 400,     # Room for one JSON object per candidate
    "temperature": 0.1,     # Near-deterministic scoring
    "top_k": 20,
    "top_p": 0.8,
    "repeat_penalty": 1.1,
    "num_ctx": 2048,
}


class LLMManager:
    """
    Ollama-backed text generation client.

    Implements the AI collaborator contract consumed by the enhancement
    adapter: generate_response(question=..., model=...) returns a dict
    with a "response" string.

    Attributes:
        endpoint (str): Ollama generate endpoint URL
        model (str): Default model name for inference
        timeout (float): Per-request timeout in seconds
        session (requests.Session): Persistent HTTP session
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
        warm_up: bool = False,
    ):
        """
        Initialize the client.

        Args:
            endpoint (str, optional): Overrides OLLAMA_ENDPOINT
            model (str, optional): Overrides INTERVIEWASSIST_MODEL
            timeout (float): Request timeout in seconds
            session (requests.Session, optional): Pre-built session
            warm_up (bool): Send a one-token request so the model is loaded
        """
        self.endpoint = endpoint or OLLAMA_ENDPOINT
        self.model = model or DEFAULT_MODEL
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({"Connection": "keep-alive"})

        if warm_up:
            self._warm_up_model()

    def generate_response(self, question: str, model: Optional[str] = None) -> dict:
        """
        Generate a completion for a prompt.

        Args:
            question (str): Prompt text
            model (str, optional): Model name for this call

        Returns:
            dict: {"response": str, "model": str}

        Raises:
            AIEnhancementFailure: On transport errors, HTTP errors or a
                malformed response body
        """
        prompt = self._truncate_prompt(question)
        model_name = model or self.model
        start = time.time()

        try:
            response = self.session.post(
                self.endpoint,
                json={
                    "model": model_name,
                    "prompt": prompt,
                    "stream": False,
                    "options": DEFAULT_OPTIONS,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            print(f"LLM error: {exc}")
            raise AIEnhancementFailure(f"LLM request failed: {exc}") from exc

        self._log_metrics(len(prompt), start, time.time())
        return {"response": str(data.get("response", "")).strip(), "model": model_name}

    def is_available(self) -> bool:
        """Check whether the Ollama server answers on its tags endpoint."""
        tags_url = self.endpoint.rsplit("/api/", 1)[0] + "/api/tags"
        try:
            response = self.session.get(tags_url, timeout=2)
            return response.ok
        except requests.RequestException:
            return False

    # ------------------------------------------------------------- Helpers

    def _truncate_prompt(self, prompt: str) -> str:
        if len(prompt) <= MAX_PROMPT_CHARS:
            return prompt
        return prompt[:MAX_PROMPT_CHARS]

    def _log_metrics(self, prompt_chars: int, start_time: float, end_time: float):
        print(f"LLM latency total={end_time - start_time:.2f}s | prompt_chars={prompt_chars}")

    def _warm_up_model(self):
        """
        Warm up the model connection to reduce first-request latency.

        Failures only delay the first real request, so they are reported
        and otherwise ignored.
        """
        try:
            self.session.post(
                self.endpoint,
                json={
                    "model": self.model,
                    "prompt": ".",
                    "stream": False,
                    "options": {"num_predict": 1},
                },
                timeout=5,
            )
        except requests.RequestException as exc:
            print(f"LLM warm-up skipped: {exc}")
