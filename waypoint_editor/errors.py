"""
Error types for the waypoint editor.

Operator mistakes (connecting a node to itself, batch actions on a too-small
selection) raise InvalidOperation and are absorbed by the editor session.
Nothing here is fatal to the host process.
"""

from typing import Optional


class WaypointError(Exception):
    """Base error for waypoint graph operations, with the operation name for context."""
    def __init__(self, message: str, operation: str = "", node_id: Optional[str] = None):
        self.operation = operation
        self.node_id = node_id
        super().__init__(message)


class InvalidOperation(WaypointError):
    """The requested edit is refused; graph state is unchanged."""


class UnknownNode(WaypointError, KeyError):
    """A node id does not refer to a node currently in the graph."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0] if self.args else ""
