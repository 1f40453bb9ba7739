"""
External Collaborator Contracts

Protocols for the two optional services the detector consumes, plus a
helper that awaits a collaborator method whether it is a coroutine or a
blocking call. Blocking calls run in a worker thread so the event loop is
never stalled by HTTP or Tesseract work.

Author: Quinn Evans
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from models import OCRResult


@runtime_checkable
class OCRService(Protocol):
    def perform_ocr(self, image: Any, options: Optional[dict] = None) -> OCRResult: ...


@runtime_checkable
class AIService(Protocol):
    def generate_response(self, question: str, model: Optional[str] = None) -> dict: ...


async def call_collaborator(method: Callable[..., Any], *args, timeout: Optional[float] = None, **kwargs) -> Any:
    """
    Invoke a collaborator method and wait for its result.

    Args:
        method (callable): Bound sync or async method
        timeout (float, optional): Seconds before asyncio.TimeoutError

    Returns:
        Any: The method's return value
    """
    if inspect.iscoroutinefunction(method):
        pending = method(*args, **kwargs)
    else:
        pending = asyncio.to_thread(functools.partial(method, *args, **kwargs))

    if timeout is None:
        return await pending
    return await asyncio.wait_for(pending, timeout=timeout)
