"""Unit tests for the conversation state machine."""
import pytest

from quotestream.chat import Conversation, MessageOrigin
from quotestream.errors import ConversationStateError


class TestConversation:
    """Tests for Conversation."""

    def test_greeting_is_a_notice(self):
        conv = Conversation(greeting="Hallo!")

        assert len(conv.messages) == 1
        assert conv.messages[0].notice
        assert conv.messages[0].origin is MessageOrigin.ASSISTANT
        assert conv.history() == []

    def test_streaming_lifecycle(self):
        conv = Conversation()
        conv.append_user_message("Ich brauche eine Website")
        message = conv.begin_assistant_message()

        assert conv.is_typing
        assert message.streaming
        conv.append_to_assistant_message("Gerne")
        conv.append_to_assistant_message(", gern!")
        conv.finalize_assistant_message()

        assert not conv.is_typing
        assert not message.streaming
        assert message.text == "Gerne, gern!"

    def test_ids_are_ordinal(self):
        conv = Conversation(greeting="Hallo")
        user = conv.append_user_message("a")
        reply = conv.begin_assistant_message()

        assert [m.id for m in conv.messages] == [1, 2, 3]
        assert user.is_user and not reply.is_user

    def test_user_message_rejected_while_typing(self):
        conv = Conversation()
        conv.begin_assistant_message()

        with pytest.raises(ConversationStateError):
            conv.append_user_message("noch eine Frage")

    def test_single_streaming_message(self):
        conv = Conversation()
        conv.begin_assistant_message()

        with pytest.raises(ConversationStateError):
            conv.begin_assistant_message()

    def test_no_mutation_after_finalize(self):
        conv = Conversation()
        conv.begin_assistant_message()
        conv.finalize_assistant_message()

        with pytest.raises(ConversationStateError):
            conv.append_to_assistant_message("x")
        with pytest.raises(ConversationStateError):
            conv.finalize_assistant_message()

    def test_replace_text(self):
        conv = Conversation()
        message = conv.begin_assistant_message()
        conv.append_to_assistant_message("alt")
        conv.replace_assistant_text("neu")

        assert message.text == "neu"

    def test_history_excludes_notices_and_open_message(self):
        conv = Conversation(greeting="Hallo")
        conv.append_user_message("Frage 1")
        conv.begin_assistant_message()
        conv.append_to_assistant_message("Antwort 1")
        conv.finalize_assistant_message()
        conv.append_notice("Sie senden zu viele Nachrichten.")
        conv.append_user_message("Frage 2")
        conv.begin_assistant_message()

        history = conv.history()

        assert [(m.role, m.content) for m in history] == [
            ("user", "Frage 1"),
            ("assistant", "Antwort 1"),
            ("user", "Frage 2"),
        ]

    def test_empty_reply_is_not_history(self):
        conv = Conversation()
        conv.append_user_message("Frage")
        conv.begin_assistant_message()
        conv.finalize_assistant_message()

        assert [m.role for m in conv.history()] == ["user"]

    def test_reset(self):
        conv = Conversation(greeting="Hallo")
        conv.append_user_message("a")
        conv.reset(greeting="Hallo")

        assert len(conv.messages) == 1
        assert conv.messages[0].id == 1

    def test_reset_while_typing_fails(self):
        conv = Conversation()
        conv.begin_assistant_message()

        with pytest.raises(ConversationStateError):
            conv.reset()
