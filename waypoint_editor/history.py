"""
Undo/redo ledger for waypoint graph edits.

Every structural change to a WaypointGraph is recorded as a Mutation:

  Mutation(action="CONNECT", node_id="a1b2...", payload="c3d4...")

Mutations are grouped into UndoUnits. A unit is opened with
`history.transaction(label)`; transactions nest, and everything recorded
inside the outermost one becomes a single unit, so one undo reverses a whole
ring, grid or batch connect.

Supported actions:
- ADD_NODE:    payload = node snapshot (no connections)
- REMOVE_NODE: payload = node snapshot (connections already recorded as DISCONNECTs)
- CONNECT:     payload = id of the other endpoint
- DISCONNECT:  payload = id of the other endpoint
- UPDATE_NODE: payload = {"before": {...}, "after": {...}}
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional, Protocol

logger = logging.getLogger(__name__)

ADD_NODE = "ADD_NODE"
REMOVE_NODE = "REMOVE_NODE"
CONNECT = "CONNECT"
DISCONNECT = "DISCONNECT"
UPDATE_NODE = "UPDATE_NODE"

ACTIONS = frozenset([ADD_NODE, REMOVE_NODE, CONNECT, DISCONNECT, UPDATE_NODE])

DEFAULT_LIMIT = 200


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Mutation:
    action: str
    node_id: str
    payload: Any = None


@dataclass
class UndoUnit:
    """One undoable step as seen by the operator."""
    label: str
    timestamp: str = field(default_factory=_now_iso)
    mutations: List[Mutation] = field(default_factory=list)


class MutationTarget(Protocol):
    """Anything that can replay a mutation forwards or backwards (the graph)."""

    def apply_mutation(self, mutation: Mutation, reverse: bool = False) -> None:
        ...


class UndoHistory:
    """
    Stack of UndoUnits with redo support.

    The graph binds itself as the target; undo/redo replay recorded mutations
    through it while recording is suspended.
    """

    def __init__(self, limit: int = DEFAULT_LIMIT):
        self.limit = limit
        self._target: Optional[MutationTarget] = None
        self._undo: List[UndoUnit] = []
        self._redo: List[UndoUnit] = []
        self._open: Optional[UndoUnit] = None
        self._depth = 0
        self._replaying = False

    def bind(self, target: MutationTarget) -> None:
        self._target = target

    @property
    def is_replaying(self) -> bool:
        return self._replaying

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_label(self) -> Optional[str]:
        return self._undo[-1].label if self._undo else None

    @property
    def redo_label(self) -> Optional[str]:
        return self._redo[-1].label if self._redo else None

    def labels(self) -> List[str]:
        """Labels of undoable units, oldest first."""
        return [unit.label for unit in self._undo]

    @contextmanager
    def transaction(self, label: str) -> Iterator[UndoUnit]:
        """
        Group everything recorded inside into one undo unit.

        If an exception escapes the outermost transaction, the partial unit is
        rolled back before the exception propagates.
        """
        if self._depth == 0:
            self._open = UndoUnit(label=label)
        unit = self._open
        self._depth += 1
        try:
            yield unit
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._open = None
                self._rollback(unit)
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self._open = None
                if unit.mutations:
                    self._push(unit)

    def record(self, mutation: Mutation) -> None:
        if self._replaying:
            return
        if mutation.action not in ACTIONS:
            raise ValueError(f"Unknown mutation action: {mutation.action}")
        if self._open is None:
            # Mutation made outside any transaction still gets its own unit
            self._push(UndoUnit(label=mutation.action, mutations=[mutation]))
            return
        self._open.mutations.append(mutation)

    def _push(self, unit: UndoUnit) -> None:
        self._undo.append(unit)
        self._redo.clear()
        if self.limit and len(self._undo) > self.limit:
            del self._undo[0]
        logger.debug(f"Recorded '{unit.label}' ({len(unit.mutations)} mutations)")

    def _replay(self, mutations: List[Mutation], reverse: bool) -> None:
        if self._target is None:
            raise RuntimeError("UndoHistory is not bound to a graph")
        ordered = reversed(mutations) if reverse else mutations
        self._replaying = True
        try:
            for mutation in ordered:
                self._target.apply_mutation(mutation, reverse=reverse)
        finally:
            self._replaying = False

    def _rollback(self, unit: UndoUnit) -> None:
        if unit.mutations:
            logger.warning(f"Rolling back partial '{unit.label}' ({len(unit.mutations)} mutations)")
            self._replay(unit.mutations, reverse=True)

    def undo(self) -> Optional[UndoUnit]:
        """Reverse the most recent unit. Returns it, or None when there is nothing to undo."""
        if not self._undo or self._depth:
            return None
        unit = self._undo.pop()
        self._replay(unit.mutations, reverse=True)
        self._redo.append(unit)
        logger.info(f"Undo: {unit.label}")
        return unit

    def redo(self) -> Optional[UndoUnit]:
        """Reapply the most recently undone unit."""
        if not self._redo or self._depth:
            return None
        unit = self._redo.pop()
        self._replay(unit.mutations, reverse=False)
        self._undo.append(unit)
        logger.info(f"Redo: {unit.label}")
        return unit

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
