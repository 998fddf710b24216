import json
from datetime import UTC, datetime

from fabric_core.history.codec import (
    NO_CONVERSATION_HISTORY_SUMMARY,
    build_initial_thread,
    convert_history,
    entry_for_tool_invocations,
    entry_for_tool_result,
    history_summary_message,
    pack_tool_invocations,
    pack_tool_result,
    stringify_history,
)
from fabric_core.history.models import (
    BotIdentity,
    PersistedHistoryEntry,
    ToolMetadata,
    UserProfile,
)
from fabric_core.history.prompts import DEFAULT_SYSTEM_CONTENT
from fabric_core.messages import (
    AssistantMessage,
    SystemMessage,
    ToolInvocation,
    ToolMessage,
    UserMessage,
)


class TestBuildInitialThread:
    """Test encoding a new turn."""

    def test_fixed_order(self, profile: UserProfile, bot: BotIdentity) -> None:
        """System prompt, identity, history, speaker, user message."""
        history = [UserMessage(content="<@U1>: earlier"), AssistantMessage(content="reply")]
        now = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)

        thread = build_initial_thread(history, profile, "Who works on solar?", bot, now=now)

        assert len(thread) == 6
        assert thread[0] == SystemMessage(content=DEFAULT_SYSTEM_CONTENT)
        assert isinstance(thread[1], SystemMessage)
        assert "2024-05-01T12:30:00+00:00" in thread[1].content
        assert "Your Slack bot ID is B999 and" in thread[1].content
        assert "<@B999>" not in thread[1].content
        assert "<@U999>" in thread[1].content
        assert thread[2:4] == history
        assert isinstance(thread[4], SystemMessage)
        assert '"slack_id":"U123"' in thread[4].content
        assert "Ada Lovelace" in thread[4].content
        assert thread[5] == UserMessage(content="Who works on solar?")

    def test_bot_without_user_id(self, profile: UserProfile) -> None:
        """The user id is left out when unknown."""
        thread = build_initial_thread([], profile, "hi", BotIdentity(bot_id="B1"))

        assert "Your Slack bot ID is B1." in thread[1].content
        assert "user ID" not in thread[1].content
        assert len(thread) == 4

    def test_custom_system_prompt(self, profile: UserProfile, bot: BotIdentity) -> None:
        """A custom system prompt replaces the default."""
        thread = build_initial_thread([], profile, "hi", bot, system_prompt="Be brief.")

        assert thread[0] == SystemMessage(content="Be brief.")


class TestConvertHistory:
    """Test decoding persisted history."""

    def test_orders_by_timestamp_and_skips_trigger(self) -> None:
        """Entries are sorted numerically and the trigger is excluded."""
        entries = [
            PersistedHistoryEntry(text="third", author="U2", timestamp="1700000010.5"),
            PersistedHistoryEntry(text="trigger", author="U1", timestamp="1700000020.0"),
            PersistedHistoryEntry(text="first", author="U1", timestamp="1700000009.9"),
            PersistedHistoryEntry(text="second", author_is_bot=True, timestamp="1700000010.1"),
        ]

        history = convert_history(entries, "1700000020.0")

        assert history == [
            UserMessage(content="<@U1>: first"),
            AssistantMessage(content="second"),
            UserMessage(content="<@U2>: third"),
        ]

    def test_skips_entries_without_author_or_text(self) -> None:
        """Join notices and empty entries are ignored."""
        entries = [
            PersistedHistoryEntry(text="has joined the channel", timestamp="1.0"),
            PersistedHistoryEntry(author="U1", timestamp="2.0"),
            PersistedHistoryEntry(author_is_bot=True, timestamp="3.0"),
        ]

        assert convert_history(entries, "9.0") == []

    def test_orphan_tool_result_dropped(self) -> None:
        """A persisted result without a persisted call is not sent to the model."""
        entries = [entry_for_tool_result("call_1", '{"documents": []}', "1.0")]

        assert convert_history(entries, "9.0") == []

    def test_round_trip_tool_call_and_result(self) -> None:
        """A persisted call and result decode into the same call and result."""
        invocation = ToolInvocation(
            id="call_1", name="searchDocuments", arguments='{"query": "solar"}'
        )
        entries = [
            entry_for_tool_invocations([invocation], "1.0"),
            entry_for_tool_result("call_1", '{"documents": []}', "2.0"),
        ]

        history = convert_history(entries, "9.0")

        assert history == [
            AssistantMessage(content=None, tool_calls=[invocation]),
            ToolMessage(tool_call_id="call_1", content='{"documents": []}'),
        ]

    def test_round_trip_through_transport(self) -> None:
        """Metadata survives the platform envelope."""
        invocation = ToolInvocation(id="call_1", name="fetchLinkedInProfile", arguments="{}")
        messages = [
            {
                "ts": "1.0",
                "bot_id": "B999",
                "text": "_Fetch LinkedIn profile for Jane..._",
                "metadata": pack_tool_invocations([invocation]).to_transport(),
            },
            {
                "ts": "2.0",
                "bot_id": "B999",
                "text": "{}",
                "metadata": pack_tool_result("call_1").to_transport(),
            },
        ]

        history = convert_history(
            [PersistedHistoryEntry.from_platform(m) for m in messages], "9.0"
        )

        assert history == [
            AssistantMessage(
                content="_Fetch LinkedIn profile for Jane..._", tool_calls=[invocation]
            ),
            ToolMessage(tool_call_id="call_1", content="{}"),
        ]

    def test_marker_without_results_keeps_text(self) -> None:
        """Calls never answered are stripped, leaving the marker text."""
        invocation = ToolInvocation(id="call_1", name="searchDocuments", arguments="{}")
        entries = [
            entry_for_tool_invocations([invocation], "1.0", text="_Semantic search..._"),
        ]

        assert convert_history(entries, "9.0") == [
            AssistantMessage(content="_Semantic search..._")
        ]


class TestToolMetadata:
    """Test the metadata envelope."""

    def test_invocations_envelope(self) -> None:
        """Invocations are stored as a JSON string under llm_tool_calls."""
        invocation = ToolInvocation(id="c1", name="a", arguments="{}")

        envelope = pack_tool_invocations([invocation]).to_transport()

        assert envelope["event_type"] == "llm_tool_calls"
        assert json.loads(envelope["event_payload"]["tool_calls"]) == [invocation.to_openai()]

    def test_result_envelope(self) -> None:
        """Results are stored under tool_result."""
        assert pack_tool_result("c1").to_transport() == {
            "event_type": "tool_result",
            "event_payload": {"tool_call_id": "c1"},
        }

    def test_from_transport_accepts_list_payload(self) -> None:
        """A tool_calls payload that is already a list is accepted."""
        metadata = ToolMetadata.from_transport(
            {
                "event_type": "llm_tool_calls",
                "event_payload": {
                    "tool_calls": [
                        {"id": "c1", "type": "function", "function": {"name": "a", "arguments": "{}"}}
                    ]
                },
            }
        )

        assert metadata is not None
        assert metadata.invocations[0].id == "c1"

    def test_from_transport_ignores_other_events(self) -> None:
        """Unrelated or broken metadata decodes to None."""
        assert ToolMetadata.from_transport(None) is None
        assert ToolMetadata.from_transport({"event_type": "assistant_message"}) is None
        assert (
            ToolMetadata.from_transport(
                {"event_type": "llm_tool_calls", "event_payload": {"tool_calls": "{not json"}}
            )
            is None
        )

    def test_from_platform_detects_bot(self) -> None:
        """Bot authorship comes from bot_id or the assistant_message event."""
        by_id = PersistedHistoryEntry.from_platform({"ts": "1.0", "text": "x", "bot_id": "B1"})
        by_event = PersistedHistoryEntry.from_platform(
            {"ts": "1.0", "text": "x", "metadata": {"event_type": "assistant_message"}}
        )
        by_user = PersistedHistoryEntry.from_platform({"ts": "1.0", "text": "x", "user": "U1"})

        assert by_id.author_is_bot
        assert by_event.author_is_bot
        assert not by_user.author_is_bot
        assert by_user.author == "U1"


class TestStringifyHistory:
    """Test the plain-text transcript."""

    def test_transcript_lines(self) -> None:
        """Users, assistant replies and tool use are rendered one per line."""
        invocation = ToolInvocation(id="c1", name="searchDocuments", arguments='{"query":"solar"}')
        entries = [
            PersistedHistoryEntry(text=" Who knows solar? ", author="U1", timestamp="1.0"),
            entry_for_tool_invocations([invocation], "2.0", text="_Semantic search..._"),
            PersistedHistoryEntry(text="Jane does.", author_is_bot=True, timestamp="3.0"),
            PersistedHistoryEntry(text="", author="U2", timestamp="4.0"),
        ]

        assert stringify_history(entries) == (
            "User <@U1>: Who knows solar?\n"
            '  (Assistant used tool(s): searchDocuments({"query":"solar"}).)\n'
            "Assistant: Jane does."
        )

    def test_empty_history(self) -> None:
        """No usable entries yields the brand-new-conversation notice."""
        assert stringify_history([]) == NO_CONVERSATION_HISTORY_SUMMARY

    def test_summary_message(self) -> None:
        """The summary is wrapped in one system message."""
        message = history_summary_message(
            [PersistedHistoryEntry(text="hi", author="U1", timestamp="1.0")]
        )

        assert isinstance(message, SystemMessage)
        assert message.content.endswith("User <@U1>: hi")
