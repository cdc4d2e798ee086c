"""
Configuration constants and Pydantic models for codepilot.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_MAX_NEW_TOKENS: int = 32
DEFAULT_N_CTX: int = 2048
DEFAULT_N_GPU_LAYERS: int = 0
DEFAULT_TIMEOUT_SECONDS: int = 120
DEFAULT_BACKEND_TYPE: str = "llama_cpp"


# ─────────────────────────────────────────────────────────────────────
# INTERNAL CONSTANTS
# ─────────────────────────────────────────────────────────────────────

# Marks the cursor position inside Prompt.code
CURSOR_MARKER: str = "<CURSOR>"

# Placeholders substituted into chat message content
CONTEXT_PLACEHOLDER: str = "{CONTEXT}"
CODE_PLACEHOLDER: str = "{CODE}"


# ─────────────────────────────────────────────────────────────────────
# RETRY CONFIGURATION - For model download failures
# ─────────────────────────────────────────────────────────────────────

def _int_from_env(key: str, default: int) -> int:
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_retry_attempts() -> int:
    """
    Get max download attempts from environment or default.

    Set MODEL_DOWNLOAD_RETRY_ATTEMPTS in .env (default: 3).
    """
    return _int_from_env("MODEL_DOWNLOAD_RETRY_ATTEMPTS", 3)


def get_retry_min_wait() -> int:
    """
    Get minimum wait between download retries in seconds.

    Set MODEL_DOWNLOAD_RETRY_MIN_WAIT in .env (default: 4).
    """
    return _int_from_env("MODEL_DOWNLOAD_RETRY_MIN_WAIT", 4)


def get_retry_max_wait() -> int:
    """
    Get maximum wait between download retries in seconds.

    Set MODEL_DOWNLOAD_RETRY_MAX_WAIT in .env (default: 30).
    """
    return _int_from_env("MODEL_DOWNLOAD_RETRY_MAX_WAIT", 30)


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_timeout_seconds() -> int:
    """Per-request timeout used by the worker (CODEPILOT_TIMEOUT_SECONDS)."""
    return _int_from_env("CODEPILOT_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)


def get_hf_token() -> str | None:
    """Get HuggingFace token from environment."""
    return os.environ.get("HF_TOKEN")


def get_backend_type() -> str:
    """Backend variant to build at startup (CODEPILOT_BACKEND)."""
    return os.environ.get("CODEPILOT_BACKEND", DEFAULT_BACKEND_TYPE)


def load_llamacpp_config_from_env() -> "LlamaCppConfig":
    """
    Build a LlamaCppConfig from CODEPILOT_* environment variables.

    CODEPILOT_MODEL_REPOSITORY is required by the model itself; a missing
    CODEPILOT_MODEL_NAME is left as None and rejected when the backend is
    constructed.
    """
    n_threads = os.environ.get("CODEPILOT_N_THREADS")
    return LlamaCppConfig(
        repository=os.environ.get("CODEPILOT_MODEL_REPOSITORY", ""),
        name=os.environ.get("CODEPILOT_MODEL_NAME") or None,
        revision=os.environ.get("CODEPILOT_MODEL_REVISION") or None,
        n_ctx=_int_from_env("CODEPILOT_N_CTX", DEFAULT_N_CTX),
        n_gpu_layers=_int_from_env("CODEPILOT_N_GPU_LAYERS", DEFAULT_N_GPU_LAYERS),
        n_threads=int(n_threads) if n_threads and n_threads.isdigit() else None,
    )


# ─────────────────────────────────────────────────────────────────────
# DATA MODELS
# ─────────────────────────────────────────────────────────────────────

class ChatMessage(BaseModel):
    """A single turn in a conversation."""
    role: Literal["system", "user", "assistant"]
    content: str


class FIM(BaseModel):
    """Fill-in-middle markers. Interpreted by the engine only."""
    start: str
    middle: str
    end: str


class LlamaCppConfig(BaseModel):
    """Construction-time settings for the LLaMA.cpp backend."""
    repository: str  # HF Hub repo id, e.g. "stabilityai/stable-code-3b"
    name: Optional[str] = None  # GGUF file inside the repository
    revision: Optional[str] = None
    n_ctx: int = Field(default=DEFAULT_N_CTX, ge=0)
    n_gpu_layers: int = DEFAULT_N_GPU_LAYERS  # -1 offloads every layer
    n_threads: Optional[int] = None
