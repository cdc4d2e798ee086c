"""
TransformerWorker - routes typed requests to registered backends.

Each request names a backend (registry name) and an operation. The worker
looks the backend up, awaits the operation under a timeout and reports the
outcome as a WorkerResult. Failures, typed or not, are reported, never
retried.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from codepilot.adapters.schema import GenerationStreamRequest, Prompt
from codepilot.config import get_timeout_seconds
from codepilot.errors import BackendError
from codepilot.registry import get_backend

logger = logging.getLogger(__name__)


class _PromptRequest(BaseModel):
    request_id: int = 0
    backend: str = "default"  # registry name
    prompt: Prompt
    params: Any = Field(default_factory=dict)  # decoded by the backend


class CompletionRequest(_PromptRequest):
    """Insert-at-cursor request."""


class GenerationRequest(_PromptRequest):
    """Standalone generation request."""


class StreamRequest(BaseModel):
    """Streamed generation request."""
    backend: str = "default"
    stream: GenerationStreamRequest


WorkerRequest = Union[CompletionRequest, GenerationRequest, StreamRequest]


@dataclass
class WorkerResult:
    """
    Outcome of one request.

    `response` holds the backend's response fields on success. On failure
    `error_type` carries the failure class name so callers can branch on it
    (e.g. CapabilityUnavailable -> retry without streaming).
    """
    request_id: int
    operation: Literal["completion", "generation", "generation_stream"]
    status: Literal["success", "error"]
    duration_ms: int
    response: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class TransformerWorker:
    """
    Backend-agnostic request dispatcher.

    Usage:
        worker = TransformerWorker()
        result = await worker.run(CompletionRequest(prompt=prompt, params={...}))
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else get_timeout_seconds()
        )

    async def _dispatch(self, request: WorkerRequest) -> dict[str, Any]:
        backend = get_backend(request.backend)

        if isinstance(request, CompletionRequest):
            response = await backend.do_completion(request.prompt, request.params)
            return response.model_dump()
        if isinstance(request, GenerationRequest):
            response = await backend.do_generate(request.prompt, request.params)
            return response.model_dump()

        stream = await backend.do_generate_stream(request.stream, request.stream.params)
        chunks = [chunk async for chunk in stream]
        return {"generated_text": "".join(chunks)}

    async def run(self, request: WorkerRequest) -> WorkerResult:
        """Execute one request and report its outcome."""
        if isinstance(request, CompletionRequest):
            operation, request_id = "completion", request.request_id
        elif isinstance(request, GenerationRequest):
            operation, request_id = "generation", request.request_id
        else:
            operation, request_id = "generation_stream", request.stream.request_id

        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._dispatch(request), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.warning("Request %d (%s) timed out after %ss",
                           request_id, operation, self.timeout_seconds)
            return WorkerResult(
                request_id=request_id,
                operation=operation,
                status="error",
                duration_ms=duration_ms,
                error=f"Timed out after {self.timeout_seconds}s",
                error_type="TimeoutError",
            )
        except BackendError as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.debug("Request %d (%s) failed: %s", request_id, operation, e)
            return WorkerResult(
                request_id=request_id,
                operation=operation,
                status="error",
                duration_ms=duration_ms,
                error=str(e),
                error_type=type(e).__name__,
            )
        except Exception as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.warning("Request %d (%s) raised unexpected %s: %s",
                           request_id, operation, type(e).__name__, e)
            return WorkerResult(
                request_id=request_id,
                operation=operation,
                status="error",
                duration_ms=duration_ms,
                error=str(e),
                error_type=type(e).__name__,
            )

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        return WorkerResult(
            request_id=request_id,
            operation=operation,
            status="success",
            duration_ms=duration_ms,
            response=response,
        )
