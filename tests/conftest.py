"""Shared test fixtures for codepilot tests."""

import pytest
from unittest.mock import MagicMock, patch


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_REPOSITORY = "stabilityai/stable-code-3b"
MOCK_MODEL_NAME = "stable-code-3b-Q5_K_M.gguf"
MOCK_MODEL_PATH = "/cache/models--stabilityai--stable-code-3b/stable-code-3b-Q5_K_M.gguf"

MOCK_BOS = "<s>"
MOCK_EOS = "</s>"
MOCK_NAMED_TEMPLATE_OUTPUT = "<|im_start|>user\n...<|im_end|>\n<|im_start|>assistant\n"
MOCK_GENERATED = "    return 42\n"

MOCK_CODE = "def test_context():\n    pass\n\ndef test_code():\n    <CURSOR>"
MOCK_CONTEXT = "# utils.py\ndef helper():\n    return 1\n"

FIM_PARAMS = {
    "fim": {
        "start": "<fim_prefix>",
        "middle": "<fim_suffix>",
        "end": "<fim_middle>",
    },
    "max_new_tokens": 64,
}


# ─────────────────────────────────────────────────────────────────────
# FIXTURES - Data Models
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def sample_prompt():
    """Prompt with both code (cursor marked) and retrieved context."""
    from codepilot.adapters.schema import Prompt
    return Prompt(context=MOCK_CONTEXT, code=MOCK_CODE)


@pytest.fixture
def llamacpp_config():
    """Valid LLaMA.cpp backend configuration."""
    from codepilot.config import LlamaCppConfig
    return LlamaCppConfig(
        repository=MOCK_REPOSITORY,
        name=MOCK_MODEL_NAME,
        n_ctx=2048,
        n_gpu_layers=35,
    )


# ─────────────────────────────────────────────────────────────────────
# FIXTURES - Engine Mocking
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def mock_model():
    """Stand-in for LlamaCppModel with deterministic outputs."""
    model = MagicMock()
    model.get_bos_token = MagicMock(return_value=MOCK_BOS)
    model.get_eos_token = MagicMock(return_value=MOCK_EOS)
    model.apply_chat_template = MagicMock(return_value=MOCK_NAMED_TEMPLATE_OUTPUT)
    model.complete = MagicMock(return_value=MOCK_GENERATED)
    return model


@pytest.fixture
def adapter(llamacpp_config, mock_model):
    """LlamaCppAdapter built without downloading or loading a model."""
    from codepilot.adapters.llamacpp import LlamaCppAdapter

    with patch("codepilot.adapters.llamacpp.obtain_model", return_value=MOCK_MODEL_PATH), \
         patch("codepilot.adapters.llamacpp.LlamaCppModel", return_value=mock_model):
        return LlamaCppAdapter(llamacpp_config)


@pytest.fixture
def clean_registry():
    """Reset the backend registry around a test."""
    from codepilot.registry import clear_backends
    clear_backends()
    yield
    clear_backends()
