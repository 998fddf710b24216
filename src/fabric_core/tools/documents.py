"""Document search tools backed by the member knowledge store."""

import logging
import re
from datetime import datetime
from typing import Any, Literal, Protocol, get_args

from pydantic import BaseModel, Field

from fabric_core.embedders.protocol import Embedder
from fabric_core.history.prompts import SLACK_MEMBER_LINK_PREFIX
from fabric_core.tools.base import LLMTool, ToolContext

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_LIMIT = 20

OfficeLocation = Literal["Seattle", "San Francisco"]
OFFICE_LOCATIONS: tuple[str, ...] = get_args(OfficeLocation)

_SLACK_ID_PATTERN = re.compile(r"^U[A-Z0-9]+$")


class Document(BaseModel):
    """A searchable piece of workspace content (Slack message, LinkedIn entry, ...)."""

    source_type: str
    source_unique_id: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MemberDocument(Document):
    """A document joined with the member it belongs to and its match score."""

    similarity: float = 0.0
    member_id: str
    member_name: str | None = None
    member_slack_id: str | None = None
    member_linkedin_url: str | None = None
    member_location: OfficeLocation | None = None
    member_checkin_location_today: OfficeLocation | None = None

    @property
    def member_is_checked_in_today(self) -> bool:
        return self.member_checkin_location_today is not None


class Member(BaseModel):
    id: str
    name: str
    slack_id: str | None = None
    linkedin_url: str | None = None
    location: OfficeLocation | None = None


class OnboardingConfig(BaseModel):
    """Who welcomes new members at a location, and what they are told."""

    location: OfficeLocation
    admin_user_slack_ids: list[str] = Field(default_factory=list)
    onboarding_message_content: str | None = None


class DocumentStore(Protocol):
    """Protocol for the relational store holding embedded documents and members."""

    async def find_similar(self, embedding: list[float], limit: int) -> list[Document]:
        """Return the documents closest to ``embedding``, best first."""
        ...

    async def find_similar_members(
        self,
        embedding: list[float],
        limit: int,
        *,
        location: OfficeLocation | None = None,
        checked_in_only: bool = False,
    ) -> list[MemberDocument]:
        """Return member-linked documents closest to ``embedding``, best first.

        Args:
            embedding: Query vector.
            limit: Maximum number of documents.
            location: Only members based at this location.
            checked_in_only: Only members checked in at any location today.
        """
        ...

    async def get_linkedin_documents(self, member_identifier: str) -> list[Document]:
        """Return LinkedIn documents for a member given by name, Slack id or profile URL."""
        ...

    async def get_member_by_slack_id(self, slack_id: str) -> Member | None: ...

    async def get_onboarding_config(self, location: OfficeLocation) -> OnboardingConfig | None: ...


class SearchDocumentsResult(BaseModel):
    query: str
    documents: list[Document]


class LinkedInProfileResult(BaseModel):
    member_identifier: str
    documents: list[Document]


SEARCH_DOCUMENTS_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": (
                "The search query. Content from Slack and LinkedIn is ranked by "
                "semantic similarity, so use terms similar to what you want to find. "
                'For a member\'s full LinkedIn profile use "fetchLinkedInProfile" instead.'
            ),
        },
        "limit": {
            "type": "number",
            "description": (
                "Number of results to return. Use 20 as a minimum and sort through "
                "the results by hand; some may be irrelevant."
            ),
            "default": DEFAULT_DOCUMENT_LIMIT,
        },
    },
    "required": ["query"],
}

FETCH_LINKEDIN_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "memberIdentifier": {
            "type": "string",
            "description": (
                "The member's full name, Slack ID or LinkedIn URL, e.g. 'Jason Curtis', "
                "'U07BA4JA3HC' or 'https://linkedin.com/in/jason-curtis/'"
            ),
        },
    },
    "required": ["memberIdentifier"],
}


def search_documents_tool(store: DocumentStore, embedder: Embedder) -> LLMTool:
    """Semantic search over Slack messages and LinkedIn experiences."""

    async def search(args: dict[str, Any], context: ToolContext) -> SearchDocumentsResult:
        query = args["query"]
        limit = int(args.get("limit") or DEFAULT_DOCUMENT_LIMIT)
        embedding = await embedder.embed(query)
        documents = await store.find_similar(embedding, limit)
        logger.debug("searchDocuments query=%r limit=%d found=%d", query, limit, len(documents))
        return SearchDocumentsResult(query=query, documents=documents)

    return LLMTool(
        name="searchDocuments",
        description=(
            "Search for relevant content (Slack messages and LinkedIn experiences) using "
            "semantic similarity. Rather than multi-topic searches (investors AND solar), "
            "make several specific searches."
        ),
        parameters=SEARCH_DOCUMENTS_PARAMETERS,
        impl=search,
        describe=lambda args: f'Semantic search for "{args["query"]}"',
    )


def _display_member(identifier: str) -> str:
    if _SLACK_ID_PATTERN.match(identifier):
        return f"{SLACK_MEMBER_LINK_PREFIX}{identifier} "
    return identifier


def fetch_linkedin_profile_tool(store: DocumentStore) -> LLMTool:
    """Full LinkedIn profile for one member."""

    async def fetch(args: dict[str, Any], context: ToolContext) -> LinkedInProfileResult:
        member_identifier = args["memberIdentifier"]
        documents = await store.get_linkedin_documents(member_identifier)
        return LinkedInProfileResult(member_identifier=member_identifier, documents=documents)

    return LLMTool(
        name="fetchLinkedInProfile",
        description=(
            "Fetch LinkedIn profile data for a given member. Use this to get a member's "
            "full employment history, current position and public-facing blurb."
        ),
        parameters=FETCH_LINKEDIN_PARAMETERS,
        impl=fetch,
        describe=lambda args: (
            f"Fetch LinkedIn profile for {_display_member(args['memberIdentifier'])}"
        ),
    )
