"""
InterviewAssist - Question Detection Command Line

Runs the question detection engine once over typed text or a screenshot
and prints the DetectionResult as JSON.

Usage:
    python main.py "Tell me about a time you disagreed with your manager."
    python main.py --image screenshot.png --threshold 0.6
    echo "How would you design a URL shortener?" | python main.py --no-ai

Author: Quinn Evans
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from exception_logger import exception_logger
from llm import DEFAULT_MODEL, LLMManager
from ocr_engine import TesseractOCR
from question_detector import DEFAULT_CONFIDENCE_THRESHOLD, DetectionOptions, QuestionDetector


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect interview questions and code challenges in text or screenshots")
    parser.add_argument("text", nargs="?", help="Text to analyse (reads stdin when omitted)")
    parser.add_argument("--image", type=Path, help="Screenshot to run through OCR instead of text")
    parser.add_argument("--no-ai", action="store_true", help="Skip AI enhancement")
    parser.add_argument("--threshold", type=float, default=DEFAULT_CONFIDENCE_THRESHOLD,
                        help="Minimum combined confidence to report a result")
    parser.add_argument("--model", default=DEFAULT_MODEL, help="Model name for AI enhancement")
    parser.add_argument("--error-log", help="File for error and exception logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.error_log:
        exception_logger.set_log_file(args.error_log)

    if args.image:
        payload = args.image.read_bytes()
    elif args.text is not None:
        payload = args.text
    else:
        payload = sys.stdin.read()

    detector = QuestionDetector(
        ai_service=None if args.no_ai else LLMManager(model=args.model),
        ocr_service=TesseractOCR() if args.image else None,
    )
    options = DetectionOptions(
        use_ai=not args.no_ai,
        confidence_threshold=args.threshold,
        ai_model=args.model,
    )

    result = asyncio.run(detector.detect(payload, options))
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0 if result.success else 1


# Application entry point
if __name__ == "__main__":
    sys.exit(main())
