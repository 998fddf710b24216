from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from fabric_core.messaging.protocol import MessagingClient

ToolImplementation = Callable[[Any], Awaitable[Any]]


class UnknownToolError(KeyError):
    """No tool is registered under the requested name."""


@dataclass(frozen=True)
class ToolContext:
    """Per-turn state handed to every tool implementation."""

    messaging: MessagingClient | None = None
    user_is_admin: bool = False


def _default_describe(name: str) -> Callable[[Any], str]:
    return lambda args: f"calling {name}"


@dataclass(frozen=True)
class LLMTool:
    """A tool the model can call.

    Attributes:
        name: Function name exposed to the model.
        description: What the tool does, written for the model.
        parameters: JSON schema of the arguments object.
        impl: Coroutine taking the parsed arguments and the turn's context.
        describe: Short user-facing description of a call, e.g.
            'Semantic search for "solar"'.
        admin_only: Hidden from callers without admin privileges.
    """

    name: str
    description: str
    parameters: dict[str, Any]
    impl: Callable[[Any, ToolContext], Awaitable[Any]]
    describe: Callable[[Any], str] | None = field(default=None)
    admin_only: bool = False

    def spec(self) -> dict[str, Any]:
        """Convert to the function-calling tool format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def short_description(self, args: Any) -> str:
        describe = self.describe or _default_describe(self.name)
        return describe(args)
