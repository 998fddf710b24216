import json
import logging
from typing import Any

from pydantic_core import to_json

from fabric_core.messages import AssistantMessage, ChatMessage, ToolInvocation, ToolMessage
from fabric_core.tools.base import ToolImplementation

logger = logging.getLogger(__name__)


def _serialize(payload: Any) -> str:
    return to_json(payload, fallback=str).decode()


async def _execute_one(
    invocation: ToolInvocation,
    implementations: dict[str, ToolImplementation],
) -> str:
    try:
        args = invocation.parsed_arguments()
    except json.JSONDecodeError:
        logger.exception(
            "Failed to parse tool arguments name=%s id=%s", invocation.name, invocation.id
        )
        return _serialize(
            {"error": "Failed to parse arguments JSON", "arguments": invocation.arguments}
        )

    implementation = implementations.get(invocation.name)
    if implementation is None:
        logger.error("Unknown tool called name=%s id=%s", invocation.name, invocation.id)
        return _serialize({"error": f"Unknown tool: {invocation.name}"})

    try:
        result = await implementation(args)
    except Exception as e:
        logger.exception("Error executing tool name=%s id=%s", invocation.name, invocation.id)
        return _serialize({"error": f"Error executing tool {invocation.name}: {e}"})

    logger.info("Tool call executed name=%s id=%s", invocation.name, invocation.id)
    return _serialize(result)


async def execute_tool_calls(
    invocations: list[ToolInvocation],
    implementations: dict[str, ToolImplementation],
) -> list[ChatMessage]:
    """Run each invocation and collect its result.

    Invocations run one at a time, in order. Malformed arguments, unknown
    tools and failing implementations all produce an error payload for that
    invocation; the rest of the batch still runs.

    Args:
        invocations: Fully identified invocations from one model reply.
        implementations: Name to callable map, already filtered by privilege.

    Returns:
        The assistant message carrying ``invocations``, followed by one tool
        message per invocation in the same order.
    """
    messages: list[ChatMessage] = [
        AssistantMessage(tool_calls=[tc.model_copy() for tc in invocations])
    ]
    for invocation in invocations:
        content = await _execute_one(invocation, implementations)
        messages.append(ToolMessage(tool_call_id=invocation.id, content=content))
    return messages
