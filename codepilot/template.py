"""Render user supplied Jinja chat templates (HF tokenizer_config style)."""

from __future__ import annotations

import logging
from typing import Sequence

from jinja2 import TemplateError
from jinja2.sandbox import ImmutableSandboxedEnvironment

from codepilot.config import ChatMessage
from codepilot.errors import TemplateRenderError

logger = logging.getLogger(__name__)


def _raise_exception(message: str) -> None:
    raise TemplateError(message)


def _build_environment() -> ImmutableSandboxedEnvironment:
    env = ImmutableSandboxedEnvironment(
        trim_blocks=True,
        lstrip_blocks=True,
        extensions=["jinja2.ext.loopcontrols"],
    )
    env.globals["raise_exception"] = _raise_exception
    return env


_env = _build_environment()


def apply_chat_template(
    template: str,
    messages: Sequence[ChatMessage],
    bos_token: str,
    eos_token: str,
) -> str:
    """
    Render `template` against the chat turns and special tokens.

    The template sees `messages` (list of {"role", "content"} dicts),
    `bos_token`, `eos_token` and `add_generation_prompt` (always True).

    Raises:
        TemplateRenderError: on syntax errors, undefined attributes, errors
            raised by template expressions, or a template calling
            raise_exception()
    """
    try:
        compiled = _env.from_string(template)
        return compiled.render(
            messages=[m.model_dump() for m in messages],
            bos_token=bos_token,
            eos_token=eos_token,
            add_generation_prompt=True,
        )
    except TemplateError as e:
        logger.debug("Chat template failed to render: %s", e)
        raise TemplateRenderError(f"Failed to render chat template: {e}") from e
    except Exception as e:
        # Python errors raised by template expressions (e.g. str + int, 1 / 0)
        logger.debug("Chat template raised %s: %s", type(e).__name__, e)
        raise TemplateRenderError(
            f"Failed to render chat template: {type(e).__name__}: {e}"
        ) from e
