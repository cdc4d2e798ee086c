"""
LlamaCppModel - thin wrapper around a loaded llama_cpp.Llama.

Owns the engine handle and everything the engine interprets itself:
special tokens, built-in chat formats, FIM markers and generation.
Calls into the handle that mutate its context are serialized with a lock,
so adapters may share one instance across concurrent requests.
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Sequence

from llama_cpp import Llama, llama_chat_format

from codepilot.config import CURSOR_MARKER, FIM, ChatMessage, LlamaCppConfig
from codepilot.errors import (
    EngineFailure,
    EngineTemplateError,
    MissingSpecialToken,
    ModelAcquisitionError,
)

logger = logging.getLogger(__name__)

# Chat format name -> llama_chat_format formatter attribute
NAMED_CHAT_FORMATS: dict[str, str] = {
    "chatml": "format_chatml",
    "llama-2": "format_llama2",
    "llama-3": "format_llama3",
    "mistral-instruct": "format_mistral_instruct",
    "zephyr": "format_zephyr",
    "gemma": "format_gemma",
    "alpaca": "format_alpaca",
    "qwen": "format_qwen",
    "phind": "format_phind",
    "openchat": "format_openchat",
    "saiga": "format_saiga",
    "chatglm3": "format_chatglm3",
    "vicuna": "format_vicuna",
    "oasst_llama": "format_oasst_llama",
    "baichuan": "format_baichuan",
    "baichuan-2": "format_baichuan2",
    "openbuddy": "format_openbuddy",
    "redpajama-incite": "format_redpajama_incite",
    "snoozy": "format_snoozy",
    "intel": "format_intel",
    "open-orca": "format_open_orca",
    "mistrallite": "format_mistrallite",
    "pygmalion": "format_pygmalion",
}

# Used when the GGUF file embeds no chat template (llama.cpp does the same)
FALLBACK_CHAT_FORMAT = "chatml"

CHAT_TEMPLATE_METADATA_KEY = "tokenizer.chat_template"


def build_fim_prompt(prompt: str, fim: FIM) -> str:
    """Lay out prefix/suffix around the cursor using the FIM markers."""
    prefix, _, suffix = prompt.partition(CURSOR_MARKER)
    return f"{fim.start}{prefix}{fim.middle}{suffix}{fim.end}"


class LlamaCppModel:
    """A loaded GGUF model and the operations backends need from it."""

    def __init__(self, model_path: Path, config: LlamaCppConfig):
        """
        Load the model.

        Raises:
            ModelAcquisitionError: if llama.cpp cannot load the file
        """
        kwargs = {
            "model_path": str(model_path),
            "n_ctx": config.n_ctx,
            "n_gpu_layers": config.n_gpu_layers,
            "verbose": False,
        }
        if config.n_threads is not None:
            kwargs["n_threads"] = config.n_threads

        logger.info("Loading %s (n_ctx=%d, n_gpu_layers=%d)",
                    model_path, config.n_ctx, config.n_gpu_layers)
        try:
            self._llm = Llama(**kwargs)
        except Exception as e:
            raise ModelAcquisitionError(f"Failed to load model {model_path}: {e}") from e

        self._lock = threading.Lock()

    # ─────────────────────────────────────────────────────────────────
    # SPECIAL TOKENS
    # ─────────────────────────────────────────────────────────────────

    def _special_token(self, token_id: int) -> Optional[str]:
        if token_id < 0:
            return None
        text = self._llm.detokenize([token_id], special=True)
        return text.decode("utf-8", errors="replace")

    def get_bos_token(self) -> str:
        token = self._special_token(self._llm.token_bos())
        if token is None:
            raise MissingSpecialToken("Model does not define a bos token")
        return token

    def get_eos_token(self) -> str:
        token = self._special_token(self._llm.token_eos())
        if token is None:
            raise MissingSpecialToken("Model does not define an eos token")
        return token

    # ─────────────────────────────────────────────────────────────────
    # CHAT TEMPLATES
    # ─────────────────────────────────────────────────────────────────

    def apply_chat_template(
        self,
        messages: Sequence[ChatMessage],
        chat_format: Optional[str] = None,
    ) -> str:
        """
        Format messages with a built-in chat format.

        With chat_format None the model's embedded template is used,
        falling back to chatml when the file carries none.

        Raises:
            EngineTemplateError: unknown format name or formatter failure
        """
        chat_messages = [m.model_dump() for m in messages]

        if chat_format is None:
            embedded = self._llm.metadata.get(CHAT_TEMPLATE_METADATA_KEY)
            if embedded:
                logger.debug("Formatting with embedded chat template")
                return self._apply_embedded_template(embedded, chat_messages)
            chat_format = FALLBACK_CHAT_FORMAT

        attr = NAMED_CHAT_FORMATS.get(chat_format)
        formatter = getattr(llama_chat_format, attr, None) if attr else None
        if formatter is None:
            raise EngineTemplateError(
                f"Unknown chat format '{chat_format}'. "
                f"Available: {sorted(NAMED_CHAT_FORMATS)}"
            )

        logger.debug("Formatting with chat format %s", chat_format)
        try:
            return formatter(messages=chat_messages).prompt
        except Exception as e:
            raise EngineTemplateError(f"Chat format '{chat_format}' failed: {e}") from e

    def _apply_embedded_template(self, template: str, chat_messages: list[dict]) -> str:
        # Models without bos/eos still render; the tokens are just empty
        bos = self._special_token(self._llm.token_bos()) or ""
        eos = self._special_token(self._llm.token_eos()) or ""
        try:
            formatter = llama_chat_format.Jinja2ChatFormatter(
                template=template,
                eos_token=eos,
                bos_token=bos,
                add_generation_prompt=True,
            )
            return formatter(messages=chat_messages).prompt
        except Exception as e:
            raise EngineTemplateError(f"Embedded chat template failed: {e}") from e

    # ─────────────────────────────────────────────────────────────────
    # GENERATION
    # ─────────────────────────────────────────────────────────────────

    def complete(
        self,
        prompt: str,
        fim: Optional[FIM],
        max_new_tokens: int,
    ) -> str:
        """
        Generate up to max_new_tokens after the prompt.

        Raises:
            EngineFailure: any error reported by llama.cpp (context overflow,
                allocation failure, ...)
        """
        # llama.cpp treats max_tokens <= 0 as "until n_ctx"
        if max_new_tokens == 0:
            return ""

        if fim is not None:
            prompt = build_fim_prompt(prompt, fim)

        logger.debug("Generating %d tokens from %d char prompt", max_new_tokens, len(prompt))
        try:
            with self._lock:
                result = self._llm.create_completion(prompt, max_tokens=max_new_tokens)
        except Exception as e:
            raise EngineFailure(str(e)) from e

        return result["choices"][0]["text"]
