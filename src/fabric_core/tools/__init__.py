from fabric_core.tools.base import (
    LLMTool,
    ToolContext,
    ToolImplementation,
    UnknownToolError,
)
from fabric_core.tools.builtin import default_registry
from fabric_core.tools.dispatcher import execute_tool_calls
from fabric_core.tools.documents import (
    DEFAULT_DOCUMENT_LIMIT,
    OFFICE_LOCATIONS,
    Document,
    DocumentStore,
    LinkedInProfileResult,
    Member,
    MemberDocument,
    OfficeLocation,
    OnboardingConfig,
    SearchDocumentsResult,
    fetch_linkedin_profile_tool,
    search_documents_tool,
)
from fabric_core.tools.members import (
    MatchedDocument,
    MemberMatch,
    SearchMembersResult,
    search_members_tool,
)
from fabric_core.tools.onboarding import (
    OnboardingError,
    OnboardingThreadResult,
    create_onboarding_thread_tool,
)
from fabric_core.tools.registry import ToolRegistry

__all__ = [
    "DEFAULT_DOCUMENT_LIMIT",
    "OFFICE_LOCATIONS",
    "Document",
    "DocumentStore",
    "LLMTool",
    "LinkedInProfileResult",
    "MatchedDocument",
    "Member",
    "MemberDocument",
    "MemberMatch",
    "OfficeLocation",
    "OnboardingConfig",
    "OnboardingError",
    "OnboardingThreadResult",
    "SearchDocumentsResult",
    "SearchMembersResult",
    "ToolContext",
    "ToolImplementation",
    "ToolRegistry",
    "UnknownToolError",
    "create_onboarding_thread_tool",
    "default_registry",
    "execute_tool_calls",
    "fetch_linkedin_profile_tool",
    "search_documents_tool",
    "search_members_tool",
]
