"""End-to-end tests for the detection pipeline."""

import json

import pytest

from conftest import (
    BEHAVIORAL_QUESTION,
    TECHNICAL_QUESTION,
    AsyncFakeAIService,
    FakeAIService,
    FakeOCRService,
    run,
)
from errors import ServiceUnavailable
from exception_logger import exception_logger
from question_detector import DetectionOptions, QuestionDetector

PROCESS_QUESTION = "What is the difference between a process and a thread?"
FENCED_CHALLENGE = (
    "Implement the function below.\n"
    "```js\nfunction sum(a, b) {\n  return a + b;\n}\n```"
)


class TestTextDetection:
    @pytest.mark.parametrize("text", ["", "   \n\t"])
    def test_empty_text(self, detector, text):
        result = run(detector.detect(text))

        assert not result.success
        assert result.type == "no_text"
        assert result.metadata["error"]

    def test_behavioral_question(self, detector, no_ai):
        result = run(detector.detect(BEHAVIORAL_QUESTION, no_ai))

        assert result.success
        assert result.type == "behavioral"
        assert result.question == BEHAVIORAL_QUESTION
        assert result.code is None
        assert result.confidence == pytest.approx(0.8)
        assert "conflict_resolution" in result.sub_categories
        assert result.matched_keywords == ["tell me about a time"]
        assert result.metadata["aiEnhanced"] is False

    def test_technical_question(self, detector, no_ai):
        result = run(detector.detect(TECHNICAL_QUESTION, no_ai))

        assert result.type == "technical"
        assert result.confidence >= 0.9
        assert "coding" in result.sub_categories

    def test_best_candidate_wins(self, detector, no_ai):
        text = "What is your name? " + TECHNICAL_QUESTION

        result = run(detector.detect(text, no_ai))

        assert result.question == TECHNICAL_QUESTION
        assert result.metadata["candidatesFound"] == 2

    def test_statement_only_text(self, detector, no_ai):
        result = run(detector.detect("I have been a backend engineer for six years.", no_ai))

        assert not result.success
        assert result.type == "general_text"
        assert result.metadata["candidatesFound"] == 0

    def test_below_threshold(self, detector):
        result = run(detector.detect(BEHAVIORAL_QUESTION, {"useAI": False, "confidenceThreshold": 0.85}))

        assert not result.success
        assert result.type == "general_text"
        assert result.metadata["bestConfidence"] == pytest.approx(0.8)

    def test_snake_case_options_and_instances(self, detector):
        assert run(detector.detect(BEHAVIORAL_QUESTION, {"confidence_threshold": 0.9})).success is False
        assert run(detector.detect(BEHAVIORAL_QUESTION, DetectionOptions(use_ai=False))).success

    @pytest.mark.parametrize("options", [["useAI"], {"confidenceThreshold": "high"}, {"useAI": "false"}])
    def test_invalid_options_are_an_error_result(self, detector, options):
        result = run(detector.detect(BEHAVIORAL_QUESTION, options))

        assert not result.success
        assert result.type == "error"
        assert result.error.startswith("Invalid options")
        assert detector.get_stats()["totalQuestions"] == 0

    def test_use_ai_must_be_a_boolean(self):
        with pytest.raises(TypeError):
            DetectionOptions(use_ai="false")

    def test_results_are_deterministic(self, detector, no_ai):
        first = run(detector.detect(TECHNICAL_QUESTION, no_ai))
        second = run(detector.detect(TECHNICAL_QUESTION, no_ai))

        assert first == second
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())


class TestCodeDetection:
    def test_fenced_challenge(self, detector, no_ai):
        result = run(detector.detect(FENCED_CHALLENGE, no_ai))

        assert result.success
        assert result.type == "code_challenge"
        assert result.code == "function sum(a, b) {\n  return a + b;\n}"
        assert result.question is None
        assert result.sub_categories == ["code_challenge"]
        assert result.metadata["category"] == "technical"
        assert result.metadata["fenced"] is True
        assert result.metadata["language"] == "js"

    def test_code_pre_empts_questions(self, fixed_clock):
        service = FakeAIService()
        detector = QuestionDetector(ai_service=service, clock=fixed_clock)
        text = "What does this return?\n```python\ndef add(a, b):\n    return a + b\n```"

        result = run(detector.detect(text))

        assert result.type == "code_challenge"
        assert result.question is None
        assert service.calls == []
        assert result.metadata["aiRequested"] is False

    def test_playbook(self, detector, no_ai):
        playbook = "\n".join([
            "- hosts: webservers",
            "  become: yes",
            "  tasks:",
            "    - name: Install nginx",
            "      apt:",
            "        name: nginx",
            "        state: present",
            "    - name: Start nginx",
            "      service:",
            "        name: nginx",
            "        state: started",
        ])

        result = run(detector.detect(playbook, no_ai))

        assert result.success
        assert result.type == "ansible_playbook"
        assert result.code == playbook

    def test_question_with_small_config_block(self, detector, no_ai):
        text = "What is wrong with this config?\n[server]\nport=8080\nhost=localhost"

        result = run(detector.detect(text, no_ai))

        assert result.success
        assert result.type == "code_challenge"
        assert result.code == "[server]\nport=8080\nhost=localhost"
        assert result.confidence == pytest.approx(0.736)

    def test_crlf_fenced_block(self, detector, no_ai):
        text = "Optimise this query:\r\n```sql\r\nSELECT name FROM users\r\nWHERE age > 30\r\n```\r\n"

        result = run(detector.detect(text, no_ai))

        assert result.success
        assert result.type == "code_challenge"
        assert result.code == "SELECT name FROM users\nWHERE age > 30"
        assert result.metadata["language"] == "sql"


class TestImageInput:
    def test_image_without_ocr_service(self, detector):
        result = run(detector.detect(b"\x89PNG\r\n\x1a\n"))

        assert not result.success
        assert result.type == "error"
        assert result.error == "OCR service not available"

    def test_image_bytes_go_through_ocr(self, fixed_clock, no_ai):
        ocr = FakeOCRService(text="Tell me about a time you led a team through a difficult challenge.")
        detector = QuestionDetector(ocr_service=ocr, clock=fixed_clock)

        result = run(detector.detect(b"\x89PNG\r\n\x1a\n", no_ai))

        assert result.success
        assert result.type == "behavioral"
        assert result.sub_categories == ["teamwork", "problem_solving"]
        assert result.metadata["ocrProvider"] == "fake"
        assert result.metadata["ocrConfidence"] == 0.9

    def test_data_url_is_an_image(self, fixed_clock):
        ocr = FakeOCRService(text=TECHNICAL_QUESTION)
        detector = QuestionDetector(ocr_service=ocr, clock=fixed_clock)

        options = {"useAI": False, "ocrOptions": {"language": "deu"}}

        result = run(detector.detect("data:image/png;base64,AAAA", options))

        assert result.type == "technical"
        assert ocr.calls == [("data:image/png;base64,AAAA", {"language": "deu"})]

    def test_empty_ocr_output(self, fixed_clock):
        detector = QuestionDetector(ocr_service=FakeOCRService(text="  "), clock=fixed_clock)

        result = run(detector.detect(b"image"))

        assert result.type == "no_text"
        assert result.metadata["ocrProvider"] == "fake"

    @pytest.mark.parametrize("error", [ServiceUnavailable("Tesseract is not installed"), RuntimeError("boom")])
    def test_ocr_failure(self, fixed_clock, error):
        detector = QuestionDetector(ocr_service=FakeOCRService(error=error), clock=fixed_clock)

        result = run(detector.detect(b"image"))

        assert not result.success
        assert result.type == "error"
        assert str(error) in result.error

    @pytest.mark.parametrize("payload", [12345, None, ["What is your name?"]])
    def test_unsupported_input(self, detector, payload):
        result = run(detector.detect(payload))

        assert not result.success
        assert result.type == "error"
        assert result.error.startswith("Unsupported input type")


class TestAIEnhancement:
    def test_enhanced_result(self, fixed_clock):
        service = FakeAIService(reply=json.dumps([{
            "questionIndex": 1,
            "confidence": 0.9,
            "type": "technical",
            "difficulty": "senior",
            "reasoning": "operating systems fundamentals",
        }]))
        detector = QuestionDetector(ai_service=service, clock=fixed_clock)

        result = run(detector.detect(PROCESS_QUESTION, {"aiModel": "tiny"}))

        assert result.confidence == pytest.approx(0.916)
        assert result.metadata["aiEnhanced"] is True
        assert result.metadata["aiRequested"] is True
        assert result.metadata["difficulty"] == "senior"
        assert result.metadata["aiReasoning"] == "operating systems fundamentals"
        assert service.calls[0]["model"] == "tiny"
        assert PROCESS_QUESTION in service.calls[0]["question"]

    def test_corrected_question_keeps_original(self, fixed_clock):
        service = FakeAIService(reply='[{"questionIndex": 1, "correctedText": "What is a hash map?"}]')
        detector = QuestionDetector(ai_service=service, clock=fixed_clock)

        result = run(detector.detect("Wat is a hash map?"))

        assert result.question == "What is a hash map?"
        assert result.metadata["originalQuestion"] == "Wat is a hash map?"

    @pytest.mark.parametrize("service", [
        FakeAIService(error=RuntimeError("connection refused")),
        FakeAIService(reply="I am not sure what you mean."),
        AsyncFakeAIService(delay=1.0),
    ])
    def test_ai_failure_matches_heuristic_result(self, fixed_clock, service):
        baseline = run(QuestionDetector(clock=fixed_clock).detect(PROCESS_QUESTION))
        detector = QuestionDetector(ai_service=service, clock=fixed_clock, ai_timeout=0.05)
        errors_before = exception_logger.error_count

        result = run(detector.detect(PROCESS_QUESTION))

        assert result.success
        assert result.type == baseline.type
        assert result.confidence == baseline.confidence
        assert result.metadata["aiEnhanced"] is False
        assert exception_logger.error_count == errors_before + 1

    def test_use_ai_false_skips_service(self, fixed_clock, no_ai):
        service = FakeAIService()
        detector = QuestionDetector(ai_service=service, clock=fixed_clock)

        result = run(detector.detect(PROCESS_QUESTION, no_ai))

        assert service.calls == []
        assert result.metadata["aiRequested"] is False


class TestSessionState:
    def test_history_capacity(self, detector, no_ai):
        questions = [f"What is your experience with tool number {i}?" for i in range(15)]
        for question in questions:
            assert run(detector.detect(question, no_ai)).success

        recent = detector.get_recent_context()
        assert detector.get_stats()["contextHistorySize"] == 10
        assert len(recent) == 5
        assert recent[0].text_snapshot == questions[-1]

    def test_failures_do_not_touch_stats(self, detector, no_ai):
        run(detector.detect("", no_ai))
        run(detector.detect("Just a statement about nothing.", no_ai))

        stats = detector.get_stats()
        assert stats["totalQuestions"] == 0
        assert stats["contextHistorySize"] == 0

    def test_stats_after_success(self, detector, no_ai):
        run(detector.detect(BEHAVIORAL_QUESTION, no_ai))

        stats = detector.get_stats()
        assert stats["totalQuestions"] == 1
        assert stats["successfulDetections"] == 1
        assert stats["classificationAccuracy"] == 1.0
        assert stats["averageConfidence"] == pytest.approx(0.4)
        assert stats["processingTimeMs"] == 0
        assert stats["aiServiceAvailable"] is False
        assert stats["ocrServiceAvailable"] is False

    def test_reset_stats(self, detector, no_ai):
        for _ in range(3):
            run(detector.detect(TECHNICAL_QUESTION, no_ai))

        detector.reset_stats()
        assert detector.get_stats()["totalQuestions"] == 0

        run(detector.detect(TECHNICAL_QUESTION, no_ai))
        assert detector.get_stats()["totalQuestions"] == 1

    def test_instances_do_not_share_state(self, fixed_clock, no_ai):
        first = QuestionDetector(clock=fixed_clock)
        second = QuestionDetector(clock=fixed_clock)

        run(first.detect(TECHNICAL_QUESTION, no_ai))

        assert second.get_stats()["totalQuestions"] == 0


class TestHealthCheck:
    def test_self_test_passes_without_recording(self, detector):
        health = run(detector.health_check())

        assert health["status"] == "healthy"
        assert health["selfTestResult"] == "passed"
        assert health["services"] == {"ai": "unavailable", "ocr": "unavailable"}
        assert health["stats"]["totalQuestions"] == 0
        assert detector.get_stats()["totalQuestions"] == 0
        assert "timestamp" in health

    def test_self_test_ignores_ai(self, fixed_clock):
        service = FakeAIService()
        detector = QuestionDetector(ai_service=service, ocr_service=FakeOCRService(), clock=fixed_clock)

        health = run(detector.health_check())

        assert health["services"] == {"ai": "available", "ocr": "available"}
        assert health["selfTestResult"] == "passed"
        assert service.calls == []

    def test_degraded_when_self_test_fails(self, fixed_clock):
        detector = QuestionDetector(clock=fixed_clock)
        # No segment can satisfy these bounds
        detector.segmenter.max_chars = 5

        health = run(detector.health_check())

        assert health["status"] == "degraded"
        assert health["selfTestResult"] == "failed"
