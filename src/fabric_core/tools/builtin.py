from fabric_core.embedders.protocol import Embedder
from fabric_core.tools.documents import (
    DocumentStore,
    fetch_linkedin_profile_tool,
    search_documents_tool,
)
from fabric_core.tools.members import search_members_tool
from fabric_core.tools.onboarding import create_onboarding_thread_tool
from fabric_core.tools.registry import ToolRegistry


def default_registry(store: DocumentStore, embedder: Embedder) -> ToolRegistry:
    """Registry with every built-in tool; ``createOnboardingThread`` is admin-only."""
    return ToolRegistry(
        [
            search_members_tool(store, embedder),
            search_documents_tool(store, embedder),
            fetch_linkedin_profile_tool(store),
            create_onboarding_thread_tool(store),
        ]
    )
