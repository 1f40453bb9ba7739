"""
Tesseract OCR Collaborator

Turns screenshots into text for question detection. Accepts PIL images,
raw encoded image bytes, or base64 data URLs as produced by screen
capture, runs Tesseract, and normalizes the output so it can be segmented
and scanned for code.

Normalization keeps line breaks and leading indentation (code and config
blocks depend on them), collapses interior runs of spaces and blank lines,
and strips non-ASCII symbols that OCR tends to hallucinate around UI chrome.

Configuration:
- Language via TESSERACT_LANG environment variable (default "eng")

Dependencies:
- pytesseract: Tesseract bindings
- Pillow: Image decoding

Author: Quinn Evans
"""

import base64
import binascii
import io
import os
import re
import time
from typing import Optional, Union

import pytesseract
from PIL import Image, UnidentifiedImageError

from errors import ServiceUnavailable
from models import OCRResult

TESSERACT_LANG = os.getenv("TESSERACT_LANG", "eng")
PAGE_SEGMENTATION_MODE = 6  # Uniform block of text
ENGINE_MODE = 3             # Default engine

ImageInput = Union[Image.Image, bytes, bytearray, str]

_HORIZONTAL_SPACE = re.compile(r"(?<=\S)[ \t]+")
_BLANK_LINES = re.compile(r"\n\s*\n")
_NOISE = re.compile(r"[^\w\s!-~]")


def clean_ocr_text(text: str) -> str:
    """
    Normalize raw OCR output.

    Args:
        text (str): Text returned by Tesseract

    Returns:
        str: Text with single spaces, no blank lines and no stray symbols
    """
    if not text:
        return ""
    cleaned = _NOISE.sub("", text)
    cleaned = _HORIZONTAL_SPACE.sub(" ", cleaned)
    cleaned = _BLANK_LINES.sub("\n", cleaned)
    return "\n".join(line.rstrip() for line in cleaned.splitlines()).strip()


def load_image(image: ImageInput) -> Image.Image:
    """
    Decode any supported image payload into a PIL image.

    Raises:
        ValueError: Payload could not be decoded as an image
    """
    if isinstance(image, Image.Image):
        return image

    if isinstance(image, str):
        _, _, encoded = image.partition(",")
        try:
            image = base64.b64decode(encoded or image, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Invalid base64 image payload") from exc

    try:
        return Image.open(io.BytesIO(bytes(image)))
    except UnidentifiedImageError as exc:
        raise ValueError("Unrecognised image format") from exc


class TesseractOCR:
    """
    OCR collaborator backed by a local Tesseract install.

    Attributes:
        language (str): Tesseract language code(s)
        config (str): Extra Tesseract command-line configuration
    """

    provider = "tesseract"

    def __init__(self, language: str = TESSERACT_LANG, psm: int = PAGE_SEGMENTATION_MODE, oem: int = ENGINE_MODE):
        self.language = language
        self.config = f"--psm {psm} --oem {oem}"

    def perform_ocr(self, image: ImageInput, options: Optional[dict] = None) -> OCRResult:
        """
        Recognise text in an image.

        Args:
            image (ImageInput): PIL image, encoded bytes or data URL
            options (dict, optional): "language" overrides the default

        Returns:
            OCRResult: Normalized text, mean word confidence in [0, 1] and
                the provider name

        Raises:
            ServiceUnavailable: Tesseract binary is missing
            ValueError: The image payload could not be decoded
        """
        options = options or {}
        language = options.get("language", self.language)
        start = time.time()

        picture = load_image(image)
        try:
            data = pytesseract.image_to_data(
                picture,
                lang=language,
                config=self.config,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise ServiceUnavailable("Tesseract is not installed") from exc

        raw_text = self._assemble_text(data)
        word_confidences = [float(conf) for conf in data.get("conf", []) if float(conf) >= 0]
        confidence = sum(word_confidences) / len(word_confidences) / 100 if word_confidences else 0.0

        print(f"[OCR] tesseract finished in {time.time() - start:.2f}s, {len(raw_text)} chars")
        return OCRResult(
            text=clean_ocr_text(raw_text),
            confidence=round(confidence, 4),
            provider=self.provider,
            raw_text=raw_text,
        )

    def _assemble_text(self, data: dict) -> str:
        """Rebuild line structure from Tesseract's word table."""
        lines = {}
        for index, word in enumerate(data.get("text", [])):
            if not word or not word.strip():
                continue
            key = (data["block_num"][index], data["par_num"][index], data["line_num"][index])
            lines.setdefault(key, []).append(word)
        return "\n".join(" ".join(words) for _, words in sorted(lines.items()))
