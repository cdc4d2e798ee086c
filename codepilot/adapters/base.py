"""
TransformerBackend Protocol - defines the contract for inference backends.

This is the WHAT (interface), not the HOW (implementation).
See llamacpp.py for a concrete implementation.
"""

from typing import Any, AsyncGenerator, Protocol

from codepilot.adapters.schema import (
    CompletionResponse,
    GenerationResponse,
    GenerationStreamRequest,
    Prompt,
)


class TransformerBackend(Protocol):
    """
    Contract every inference backend satisfies.

    Callers depend only on this interface, never on a concrete backend.
    Each backend decodes its own `params` payload at the boundary.
    """

    async def do_completion(
        self,
        prompt: Prompt,
        params: Any,
    ) -> CompletionResponse:
        """
        Produce text to insert at the cursor.

        Raises:
            BackendError subclass describing the failure
        """
        ...

    async def do_generate(
        self,
        prompt: Prompt,
        params: Any,
    ) -> GenerationResponse:
        """
        Produce a standalone generation.

        Raises:
            BackendError subclass describing the failure
        """
        ...

    async def do_generate_stream(
        self,
        request: GenerationStreamRequest,
        params: Any,
    ) -> AsyncGenerator[str, None]:
        """
        Open a stream of generated text chunks.

        Backends without streaming raise CapabilityUnavailable so callers
        can detect it and fall back to do_generate.
        """
        ...
