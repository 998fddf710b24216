import logging
from functools import partial

from fabric_core.messages import ToolInvocation
from fabric_core.tools.base import (
    LLMTool,
    ToolContext,
    ToolImplementation,
    UnknownToolError,
)

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Tools available to the agent, keyed by name.

    The registry is read-only once built and safe to share between turns.
    """

    def __init__(self, tools: list[LLMTool] | None = None) -> None:
        self._tools: dict[str, LLMTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: LLMTool) -> None:
        """Add a tool.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> LLMTool:
        """Look up a tool by name.

        Raises:
            UnknownToolError: If no tool has that name.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def _available(self, user_is_admin: bool) -> list[LLMTool]:
        return [t for t in self._tools.values() if user_is_admin or not t.admin_only]

    def specs(self, user_is_admin: bool = False) -> list[dict]:
        """Tool specs to send with a completion request."""
        return [tool.spec() for tool in self._available(user_is_admin)]

    def implementations(self, context: ToolContext) -> dict[str, ToolImplementation]:
        """Name to callable map for the dispatcher, bound to ``context``.

        Admin-only tools are left out unless the context's user is an admin.
        """
        return {
            tool.name: partial(tool.impl, context=context)
            for tool in self._available(context.user_is_admin)
        }

    def describe_call(self, invocation: ToolInvocation) -> str:
        """Short user-facing description of an invocation.

        Falls back to ``calling <name>`` when the tool is unknown, its
        arguments do not parse, or its describe callback fails.
        """
        try:
            tool = self.get(invocation.name)
            return tool.short_description(invocation.parsed_arguments())
        except Exception:
            logger.warning(
                "Could not describe tool call name=%s arguments=%r",
                invocation.name,
                invocation.arguments,
                exc_info=True,
            )
            return f"calling {invocation.name}"
