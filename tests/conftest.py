from collections.abc import AsyncIterator
from typing import Any

import pytest

from fabric_core.history.models import BotIdentity, UserProfile
from fabric_core.llm.protocol import CompletionChunk
from fabric_core.messages import ChatMessage
from fabric_core.messaging.protocol import MessageDestination, PostedMessage
from fabric_core.streaming.aggregator import ToolCallDelta
from fabric_core.tools.documents import Document, Member, MemberDocument, OnboardingConfig


class FakeClock:
    """Manually advanced monotonic clock. ``sleep`` advances it instead of waiting."""

    def __init__(self) -> None:
        # Kept in milliseconds so whole-millisecond steps stay exact
        self._ms: float = 0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self._ms / 1000

    def advance(self, ms: float) -> None:
        self._ms += ms

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._ms += seconds * 1000


class FakeMessagingClient:
    """In-memory messaging client that records every call."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self._clock = clock
        self._counter = 0
        self.created: list[dict[str, Any]] = []
        self.edits: list[dict[str, Any]] = []
        self.reactions_added: list[tuple[str, str, str]] = []
        self.reactions_removed: list[tuple[str, str, str]] = []
        self.fail_edits = False
        self.incomplete_responses = False
        self.conversations: list[list[str]] = []
        self.topics: list[tuple[str, str]] = []

    def _now(self) -> float | None:
        return self._clock() if self._clock else None

    async def create_message(
        self,
        destination: MessageDestination,
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> PostedMessage:
        self._counter += 1
        ts = f"1700000000.{self._counter:06d}"
        self.created.append(
            {
                "destination": destination,
                "text": text,
                "metadata": metadata,
                "ts": ts,
                "at": self._now(),
            }
        )
        if self.incomplete_responses:
            return PostedMessage(channel=destination.channel)
        return PostedMessage(channel=destination.channel, id=ts, timestamp=ts)

    async def edit_message(self, channel: str, message_id: str, text: str) -> PostedMessage:
        self.edits.append(
            {"channel": channel, "id": message_id, "text": text, "at": self._now()}
        )
        if self.fail_edits:
            raise ConnectionError("edit failed")
        if self.incomplete_responses:
            return PostedMessage(channel=channel)
        return PostedMessage(channel=channel, id=message_id, timestamp=message_id)

    async def add_reaction(self, channel: str, timestamp: str, name: str) -> None:
        self.reactions_added.append((channel, timestamp, name))

    async def remove_reaction(self, channel: str, timestamp: str, name: str) -> None:
        self.reactions_removed.append((channel, timestamp, name))

    async def open_conversation(self, user_ids: list[str]) -> str:
        self.conversations.append(list(user_ids))
        return f"D{len(self.conversations):03d}"

    async def set_topic(self, channel: str, topic: str) -> None:
        self.topics.append((channel, topic))

    @property
    def edit_texts(self) -> list[str]:
        return [edit["text"] for edit in self.edits]

    @property
    def created_texts(self) -> list[str]:
        return [message["text"] for message in self.created]


def text_chunks(*fragments: str) -> list[CompletionChunk]:
    """A scripted reply made of text fragments only."""
    return [CompletionChunk(content=fragment) for fragment in fragments] + [
        CompletionChunk(finish_reason="stop")
    ]


def tool_call_chunks(*calls: tuple[str, str, str]) -> list[CompletionChunk]:
    """A scripted reply requesting tools, with each call's arguments split in two."""
    chunks = []
    for index, (call_id, name, arguments) in enumerate(calls):
        middle = len(arguments) // 2
        chunks.append(
            CompletionChunk(
                tool_call_deltas=[
                    ToolCallDelta(index=index, id=call_id, name=name, arguments=arguments[:middle])
                ]
            )
        )
        chunks.append(
            CompletionChunk(tool_call_deltas=[ToolCallDelta(index=index, arguments=arguments[middle:])])
        )
    chunks.append(CompletionChunk(finish_reason="tool_calls"))
    return chunks


class FakeCompletionClient:
    """Plays back one scripted chunk list per completion request."""

    def __init__(self, replies: list[list[CompletionChunk]]) -> None:
        self._replies = list(replies)
        self.requests: list[dict[str, Any]] = []
        self.error: Exception | None = None

    async def stream_completion(
        self,
        *,
        model: str,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str = "auto",
    ) -> AsyncIterator[CompletionChunk]:
        self.requests.append(
            {
                "model": model,
                "messages": list(messages),
                "tools": tools,
                "tool_choice": tool_choice,
            }
        )
        if self.error is not None:
            raise self.error
        for chunk in self._replies.pop(0):
            yield chunk


class MockEmbedder:
    """Mock embedder for testing."""

    def __init__(self, dimensions: int = 8) -> None:
        self._dimensions = dimensions
        self.queries: list[str] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        """Return a deterministic mock embedding based on text length."""
        self.queries.append(text)
        return [len(text) / (i + 1) for i in range(self._dimensions)]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed multiple texts."""
        return [await self.embed(text) for text in texts]


class FakeDocumentStore:
    """Document store returning canned documents, members and onboarding configs."""

    def __init__(
        self,
        documents: list[Document] | None = None,
        member_documents: list[MemberDocument] | None = None,
        members: list[Member] | None = None,
        onboarding: list[OnboardingConfig] | None = None,
    ) -> None:
        self.documents = documents or []
        self.member_documents = member_documents or []
        self.members = {m.slack_id: m for m in members or []}
        self.onboarding = {c.location: c for c in onboarding or []}
        self.similar_calls: list[tuple[list[float], int]] = []
        self.member_calls: list[dict[str, Any]] = []
        self.linkedin_calls: list[str] = []

    async def find_similar(self, embedding: list[float], limit: int) -> list[Document]:
        self.similar_calls.append((embedding, limit))
        return self.documents[:limit]

    async def find_similar_members(
        self,
        embedding: list[float],
        limit: int,
        *,
        location: str | None = None,
        checked_in_only: bool = False,
    ) -> list[MemberDocument]:
        self.member_calls.append(
            {
                "embedding": embedding,
                "limit": limit,
                "location": location,
                "checked_in_only": checked_in_only,
            }
        )
        documents = [
            d
            for d in self.member_documents
            if (location is None or d.member_location == location)
            and (not checked_in_only or d.member_is_checked_in_today)
        ]
        return documents[:limit]

    async def get_linkedin_documents(self, member_identifier: str) -> list[Document]:
        self.linkedin_calls.append(member_identifier)
        return [d for d in self.documents if d.source_type == "linkedin"]

    async def get_member_by_slack_id(self, slack_id: str) -> Member | None:
        return self.members.get(slack_id)

    async def get_onboarding_config(self, location: str) -> OnboardingConfig | None:
        return self.onboarding.get(location)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock starting at zero."""
    return FakeClock()


@pytest.fixture
def messaging(clock: FakeClock) -> FakeMessagingClient:
    """Provide a recording messaging client sharing the fake clock."""
    return FakeMessagingClient(clock)


@pytest.fixture
def destination() -> MessageDestination:
    """Provide a thread destination."""
    return MessageDestination(channel="C123", thread_ts="1699999999.000001")


@pytest.fixture
def mock_embedder() -> MockEmbedder:
    """Provide a mock embedder for tests."""
    return MockEmbedder()


@pytest.fixture
def document_store() -> FakeDocumentStore:
    """Provide a store with documents, two members and Seattle's onboarding config."""
    return FakeDocumentStore(
        documents=[
            Document(
                source_type="slack",
                source_unique_id="C1:1700000000.000100",
                content="Anyone working on community solar?",
                metadata={"user": "U111"},
            ),
            Document(
                source_type="linkedin",
                source_unique_id="linkedin:jane-doe:0",
                content="Head of Solar Development at SunCo",
                metadata={"member_name": "Jane Doe"},
            ),
        ],
        member_documents=[
            MemberDocument(
                source_type="linkedin",
                source_unique_id="linkedin:jane-doe:0",
                content="Head of Solar Development at SunCo",
                similarity=0.75,
                member_id="m-jane",
                member_name="Jane Doe",
                member_slack_id="U111",
                member_location="Seattle",
                member_checkin_location_today="Seattle",
            ),
            MemberDocument(
                source_type="slack",
                source_unique_id="C1:1700000000.000200",
                content="Our agroforestry startup is hiring a CTO",
                similarity=0.5,
                member_id="m-sam",
                member_name="Sam Park",
                member_slack_id="U222",
                member_location="San Francisco",
            ),
        ],
        members=[
            Member(id="m-jane", name="Jane Doe", slack_id="U111", location="Seattle"),
            Member(id="m-new", name="Nia Newcomer", slack_id="U333", location="Seattle"),
            Member(id="m-lost", name="Lee Unsynced", slack_id="U444"),
        ],
        onboarding=[
            OnboardingConfig(
                location="Seattle",
                admin_user_slack_ids=["UADM1", "UADM2"],
                onboarding_message_content="Door codes are in the pinned post.",
            ),
        ],
    )


@pytest.fixture
def profile() -> UserProfile:
    """Provide the profile of the person being answered."""
    return UserProfile(slack_id="U123", real_name="Ada Lovelace", time_zone="Europe/London")


@pytest.fixture
def bot() -> BotIdentity:
    """Provide the assistant's identity."""
    return BotIdentity(bot_id="B999", user_id="U999")
