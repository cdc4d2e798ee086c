"""
Inference backends for codepilot.

Provider-agnostic architecture: Protocol defines WHAT, implementations define HOW.
Concrete backends are imported from their modules (or built via
codepilot.registry) so that loading the contract never loads an engine.
"""

from .base import TransformerBackend
from .schema import CompletionResponse, GenerationResponse, GenerationStreamRequest, Prompt

__all__ = [
    "TransformerBackend",
    "CompletionResponse",
    "GenerationResponse",
    "GenerationStreamRequest",
    "Prompt",
]
