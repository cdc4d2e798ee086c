"""
LlamaCppAdapter - local GGUF inference via llama-cpp-python.

Implements TransformerBackend. The only long-lived state is the loaded
LlamaCppModel; every request parses its own run parameters and resolves
its own prompt string.

Prompt resolution:
- No `messages`: the code is sent verbatim (chat settings ignored)
- `messages` + `chat_template`: custom Jinja template with model bos/eos
- `messages` only: engine chat format (`chat_format` or model default)
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Optional

from pydantic import BaseModel, Field, ValidationError

from codepilot.adapters.llamacpp_model import LlamaCppModel
from codepilot.adapters.schema import (
    CompletionResponse,
    GenerationResponse,
    GenerationStreamRequest,
    Prompt,
)
from codepilot.config import (
    DEFAULT_MAX_NEW_TOKENS,
    FIM,
    ChatMessage,
    LlamaCppConfig,
    get_hf_token,
)
from codepilot.errors import CapabilityUnavailable, ConfigurationError, MalformedParameters
from codepilot.model_hub import obtain_model
from codepilot.template import apply_chat_template
from codepilot.utils import format_chat_messages

logger = logging.getLogger(__name__)


class LlamaCppRunParams(BaseModel):
    """Per-request parameters for the LLaMA.cpp backend. Unknown keys are ignored."""
    fim: Optional[FIM] = None
    messages: Optional[list[ChatMessage]] = None
    chat_template: Optional[str] = None  # Jinja template source
    chat_format: Optional[str] = None  # Name of a built-in llama.cpp chat format
    max_new_tokens: int = Field(default=DEFAULT_MAX_NEW_TOKENS, ge=0)

    @classmethod
    def parse(cls, payload: Any) -> "LlamaCppRunParams":
        """
        Validate an untyped payload.

        Raises:
            MalformedParameters: naming each offending field
        """
        if payload is None:
            payload = {}
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise MalformedParameters(f"Invalid llama.cpp run params: {problems}") from e


class LlamaCppAdapter:
    """
    LLaMA.cpp implementation of TransformerBackend.

    Design decisions:
    - Model acquired and loaded once, at construction; failures abort it
    - No cross-request state: safe to call concurrently
    - Engine exclusivity is LlamaCppModel's job, not the adapter's
    - Blocking engine work runs in a thread so callers can time out

    Usage:
        adapter = LlamaCppAdapter(LlamaCppConfig(
            repository="stabilityai/stable-code-3b",
            name="stable-code-3b-Q5_K_M.gguf",
        ))
        response = await adapter.do_completion(prompt, {"max_new_tokens": 64})
    """

    def __init__(self, config: LlamaCppConfig, token: Optional[str] = None):
        """
        Raises:
            ConfigurationError: repository or model file name not set
            ModelAcquisitionError: model could not be downloaded or loaded
        """
        if not config.name:
            raise ConfigurationError("Please set `name` to use LLaMA.cpp")
        if not config.repository:
            raise ConfigurationError("Please set `repository` to use LLaMA.cpp")

        model_path = obtain_model(
            config.repository,
            config.name,
            revision=config.revision,
            token=token or get_hf_token(),
        )
        self._model = LlamaCppModel(model_path, config)

    def get_prompt_string(self, prompt: Prompt, params: LlamaCppRunParams) -> str:
        """Resolve the single string handed to the engine."""
        if params.messages is None:
            logger.debug("No messages: using raw code as prompt")
            return prompt.code

        chat_messages = format_chat_messages(params.messages, prompt)

        if params.chat_template is not None:
            logger.debug("Rendering custom chat template over %d messages", len(chat_messages))
            bos_token = self._model.get_bos_token()
            eos_token = self._model.get_eos_token()
            return apply_chat_template(
                params.chat_template, chat_messages, bos_token, eos_token
            )

        logger.debug("Using engine chat format %s", params.chat_format or "<model default>")
        return self._model.apply_chat_template(chat_messages, params.chat_format)

    async def _run(self, prompt: Prompt, params: Any) -> str:
        run_params = LlamaCppRunParams.parse(params)
        prompt_string = self.get_prompt_string(prompt, run_params)
        return await asyncio.to_thread(
            self._model.complete,
            prompt_string,
            run_params.fim,
            run_params.max_new_tokens,
        )

    async def do_completion(self, prompt: Prompt, params: Any) -> CompletionResponse:
        insert_text = await self._run(prompt, params)
        return CompletionResponse(insert_text=insert_text)

    async def do_generate(self, prompt: Prompt, params: Any) -> GenerationResponse:
        generated_text = await self._run(prompt, params)
        return GenerationResponse(generated_text=generated_text)

    async def do_generate_stream(
        self,
        request: GenerationStreamRequest,
        params: Any,
    ) -> AsyncGenerator[str, None]:
        """Streaming is not supported by this backend."""
        raise CapabilityUnavailable("GenerationStream is not yet implemented for llama.cpp")
