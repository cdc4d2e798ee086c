"""Tests for merging a Prompt into chat messages."""

from codepilot.adapters.schema import Prompt
from codepilot.config import ChatMessage
from codepilot.utils import format_chat_messages


PROMPT = Prompt(context="# helpers\ndef h(): ...", code="def f():\n    <CURSOR>")


class TestPlaceholderSubstitution:

    def test_replaces_context_and_code(self):
        messages = [
            ChatMessage(role="system", content="Use this context:\n{CONTEXT}"),
            ChatMessage(role="user", content="Complete the following code:\n{CODE}"),
        ]
        result = format_chat_messages(messages, PROMPT)
        assert result == [
            ChatMessage(role="system", content="Use this context:\n# helpers\ndef h(): ..."),
            ChatMessage(role="user", content="Complete the following code:\ndef f():\n    <CURSOR>"),
        ]

    def test_every_occurrence_replaced(self):
        messages = [ChatMessage(role="user", content="{CODE} and again {CODE}")]
        result = format_chat_messages(messages, Prompt(code="x"))
        assert result[0].content == "x and again x"

    def test_inserted_text_is_not_rescanned(self):
        """A context that itself contains {CODE} is inserted literally."""
        messages = [ChatMessage(role="user", content="{CONTEXT}|{CODE}")]
        result = format_chat_messages(messages, Prompt(context="see {CODE}", code="z"))
        assert result[0].content == "see {CODE}|z"

    def test_turns_without_placeholders_unchanged(self):
        messages = [
            ChatMessage(role="system", content="Be brief."),
            ChatMessage(role="user", content="{CODE}"),
        ]
        result = format_chat_messages(messages, Prompt(code="y"))
        assert result[0] == messages[0]
        assert result[1].content == "y"


class TestAppendFallback:

    def test_appends_to_last_user_turn(self):
        messages = [
            ChatMessage(role="user", content="first"),
            ChatMessage(role="assistant", content="ok"),
            ChatMessage(role="user", content="Complete this:"),
            ChatMessage(role="assistant", content=""),
        ]
        result = format_chat_messages(messages, PROMPT)
        assert result[0].content == "first"
        assert result[2].content == (
            "Complete this:\n\n# helpers\ndef h(): ...\n\ndef f():\n    <CURSOR>"
        )
        assert result[3] == messages[3]

    def test_empty_context_sends_code_only(self):
        messages = [ChatMessage(role="user", content="Go")]
        result = format_chat_messages(messages, Prompt(code="a = 1"))
        assert result[0].content == "Go\n\na = 1"

    def test_adds_user_turn_when_missing(self):
        messages = [ChatMessage(role="system", content="You complete code.")]
        result = format_chat_messages(messages, Prompt(code="a = 1"))
        assert result == [
            ChatMessage(role="system", content="You complete code."),
            ChatMessage(role="user", content="a = 1"),
        ]

    def test_empty_messages(self):
        result = format_chat_messages([], Prompt(code="a"))
        assert result == [ChatMessage(role="user", content="a")]

    def test_caller_list_not_mutated(self):
        messages = [ChatMessage(role="user", content="Go")]
        format_chat_messages(messages, Prompt(code="a"))
        assert messages == [ChatMessage(role="user", content="Go")]
