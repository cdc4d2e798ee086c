"""Helpers shared by backends for turning a Prompt into chat turns."""

import re

from codepilot.adapters.schema import Prompt
from codepilot.config import CODE_PLACEHOLDER, CONTEXT_PLACEHOLDER, ChatMessage

_PLACEHOLDER_RE = re.compile(
    f"{re.escape(CONTEXT_PLACEHOLDER)}|{re.escape(CODE_PLACEHOLDER)}"
)


def _code_block(prompt: Prompt) -> str:
    if prompt.context:
        return f"{prompt.context}\n\n{prompt.code}"
    return prompt.code


def format_chat_messages(
    messages: list[ChatMessage],
    prompt: Prompt,
) -> list[ChatMessage]:
    """
    Merge the code context into conversation turns.

    {CONTEXT} and {CODE} placeholders are replaced in every turn. When no
    turn carries a placeholder, the context and code are appended to the
    last user turn, or added as a trailing user turn if there is none.

    Returns a new list; `messages` is left untouched.
    """
    has_placeholder = any(_PLACEHOLDER_RE.search(m.content) for m in messages)

    if has_placeholder:
        substitutions = {
            CONTEXT_PLACEHOLDER: prompt.context,
            CODE_PLACEHOLDER: prompt.code,
        }
        return [
            ChatMessage(
                role=m.role,
                content=_PLACEHOLDER_RE.sub(
                    lambda match: substitutions[match.group(0)], m.content
                ),
            )
            for m in messages
        ]

    formatted = [m.model_copy() for m in messages]
    block = _code_block(prompt)

    for i in range(len(formatted) - 1, -1, -1):
        if formatted[i].role == "user":
            content = formatted[i].content
            merged = f"{content}\n\n{block}" if content else block
            formatted[i] = ChatMessage(role="user", content=merged)
            return formatted

    formatted.append(ChatMessage(role="user", content=block))
    return formatted
