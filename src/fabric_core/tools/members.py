"""Member search: find people through the documents linked to them."""

import logging
from typing import Any

from pydantic import BaseModel, Field

from fabric_core.embedders.protocol import Embedder
from fabric_core.tools.base import LLMTool, ToolContext
from fabric_core.tools.documents import (
    DEFAULT_DOCUMENT_LIMIT,
    OFFICE_LOCATIONS,
    DocumentStore,
    MemberDocument,
    OfficeLocation,
)

logger = logging.getLogger(__name__)


class MatchedDocument(BaseModel):
    """A document matched by one or more queries, with its scores summed."""

    source_type: str
    source_unique_id: str
    content: str
    combined_match_score: float = 0.0
    match_scores_by_query: dict[str, float] = Field(default_factory=dict)


class MemberMatch(BaseModel):
    """One member found by a search, with the documents that matched."""

    name: str | None = None
    slack_id: str | None = None
    linkedin_url: str | None = None
    location: OfficeLocation | None = None
    checkin_location_today: OfficeLocation | None = None
    is_checked_in_today: bool = False
    matched_queries: list[str]
    relevant_documents: list[MatchedDocument]


class SearchMembersResult(BaseModel):
    members: list[MemberMatch]


SEARCH_MEMBERS_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "queries": {
            "type": "array",
            "items": {"type": "string"},
            "description": (
                "Search queries. Members with data matching any query are included, "
                "and members matching more queries rank higher. To find CTOs in "
                'agroforestry, for instance, use ["CTO", "agroforestry"].'
            ),
        },
        "location": {
            "type": "string",
            "enum": list(OFFICE_LOCATIONS),
            "description": (
                "Only include members based at this location. Leave blank unless "
                "the user asks for a specific location."
            ),
        },
        "checkedInOnly": {
            "type": "boolean",
            "description": (
                "Only include members who are checked in today. Leave false unless "
                'the user asks for checked in members or "members here today".'
            ),
        },
        "limit": {
            "type": "number",
            "description": (
                f"Number of results per query. Request at least {DEFAULT_DOCUMENT_LIMIT} "
                "and sort through them by hand; this is a fuzzy semantic search and "
                "some results may be irrelevant."
            ),
            "default": DEFAULT_DOCUMENT_LIMIT,
        },
    },
    "required": ["queries"],
}


def combine_matches(matches: list[tuple[str, MemberDocument]]) -> list[MatchedDocument]:
    """Merge documents found by several queries.

    Documents are deduplicated by ``source_unique_id``; each query's
    similarity is added to that query's score and to the combined score.

    Returns:
        Documents ordered by combined score, highest first.
    """
    combined: dict[str, MatchedDocument] = {}
    for query, document in matches:
        entry = combined.get(document.source_unique_id)
        if entry is None:
            entry = MatchedDocument(
                source_type=document.source_type,
                source_unique_id=document.source_unique_id,
                content=document.content,
            )
            combined[document.source_unique_id] = entry
        entry.match_scores_by_query[query] = (
            entry.match_scores_by_query.get(query, 0.0) + document.similarity
        )
        entry.combined_match_score += document.similarity
    return sorted(combined.values(), key=lambda d: d.combined_match_score, reverse=True)


def group_by_member(matches: list[tuple[str, MemberDocument]]) -> list[MemberMatch]:
    """Collate matched documents into one result per member, in first-seen order."""
    by_member: dict[str, list[tuple[str, MemberDocument]]] = {}
    for query, document in matches:
        by_member.setdefault(document.member_id, []).append((query, document))

    members = []
    for member_matches in by_member.values():
        # Member fields are identical across a member's documents
        first = member_matches[0][1]
        members.append(
            MemberMatch(
                name=first.member_name,
                slack_id=first.member_slack_id,
                linkedin_url=first.member_linkedin_url,
                location=first.member_location,
                checkin_location_today=first.member_checkin_location_today,
                is_checked_in_today=first.member_is_checked_in_today,
                matched_queries=list(dict.fromkeys(query for query, _ in member_matches)),
                relevant_documents=combine_matches(member_matches),
            )
        )
    return members


def describe_member_search(args: dict[str, Any]) -> str:
    description = "Search for members"
    if args.get("location"):
        description += f" in {args['location']}"
    if args.get("queries"):
        description += f' associated with "{", ".join(args["queries"])}"'
    if args.get("checkedInOnly"):
        description += " who are checked in today"
    return description


def search_members_tool(store: DocumentStore, embedder: Embedder) -> LLMTool:
    """Find members whose documents match one or more queries."""

    async def search(args: dict[str, Any], context: ToolContext) -> SearchMembersResult:
        queries: list[str] = args["queries"]
        if not queries:
            raise ValueError("queries must not be empty")
        limit = int(args.get("limit") or DEFAULT_DOCUMENT_LIMIT)
        location = args.get("location") or None
        checked_in_only = bool(args.get("checkedInOnly"))

        # The joined query catches documents that match several topics at once
        extended = [" ".join(queries), *queries]
        embeddings = await embedder.embed_batch(extended)

        matches: list[tuple[str, MemberDocument]] = []
        for query, embedding in zip(extended, embeddings, strict=True):
            documents = await store.find_similar_members(
                embedding, limit, location=location, checked_in_only=checked_in_only
            )
            matches.extend((query, document) for document in documents)

        members = group_by_member(matches)
        logger.debug(
            "searchUsers queries=%r location=%s checked_in_only=%s documents=%d members=%d",
            queries,
            location,
            checked_in_only,
            len(matches),
            len(members),
        )
        return SearchMembersResult(members=members)

    return LLMTool(
        name="searchUsers",
        description=(
            "Search for members associated with documents (Slack messages, LinkedIn "
            "experiences and the members database) using semantic similarity. Results "
            "include each member's office location and where they are checked in today."
        ),
        parameters=SEARCH_MEMBERS_PARAMETERS,
        impl=search,
        describe=describe_member_search,
    )
