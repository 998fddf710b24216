"""Reassembly of streamed tool-call fragments.

Completion streams deliver tool calls in pieces addressed by a positional
slot index. The id and name usually arrive in the first piece for a slot and
the arguments JSON arrives as string fragments afterwards, so records are
keyed by index, never by id.
"""

from pydantic import BaseModel

from fabric_core.messages import ToolInvocation


class ToolCallDelta(BaseModel):
    """One fragment of a streamed tool call."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


class ToolCallAggregator:
    """Accumulates tool-call fragments into invocation records.

    Usage:
        ```python
        aggregator = ToolCallAggregator()
        async for chunk in stream:
            aggregator.add_all(chunk.tool_call_deltas)
        invocations = aggregator.complete()
        ```
    """

    def __init__(self) -> None:
        self._partials: dict[int, ToolInvocation] = {}

    def add(self, delta: ToolCallDelta) -> None:
        """Merge a fragment into the record for its slot.

        The first fragment for a slot initializes the record. Later fragments
        overwrite the name, fill in an id that was still missing, and append
        argument text in arrival order.
        """
        partial = self._partials.get(delta.index)
        if partial is None:
            self._partials[delta.index] = ToolInvocation(
                id=delta.id or "",
                name=delta.name or "",
                arguments=delta.arguments or "",
            )
            return

        if delta.id and not partial.id:
            partial.id = delta.id
        if delta.name:
            partial.name = delta.name
        if delta.arguments:
            partial.arguments += delta.arguments

    def add_all(self, deltas: list[ToolCallDelta]) -> None:
        for delta in deltas:
            self.add(delta)

    @property
    def partials(self) -> list[ToolInvocation]:
        """All records seen so far, complete or not, in slot order."""
        return [self._partials[index] for index in sorted(self._partials)]

    def complete(self) -> list[ToolInvocation]:
        """Invocations with both an id and a name, in slot order.

        Records missing either are incomplete and never forwarded.
        """
        return [tc.model_copy() for tc in self.partials if tc.is_complete]

    def __len__(self) -> int:
        return len(self._partials)
