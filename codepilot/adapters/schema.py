from typing import Any

from pydantic import BaseModel, Field


class Prompt(BaseModel):
    """
    Code around the cursor plus optional retrieved context.

    Built by the memory layer and handed to a backend read-only.
    The cursor, when present, is marked in `code` with CURSOR_MARKER.
    """
    context: str = ""
    code: str


class CompletionResponse(BaseModel):
    """Text to insert at the cursor."""
    insert_text: str


class GenerationResponse(BaseModel):
    """Standalone generated text."""
    generated_text: str


class GenerationStreamRequest(BaseModel):
    """Request for a streamed generation, identified for chunk routing."""
    request_id: int = 0
    prompt: Prompt
    params: Any = Field(default_factory=dict)
