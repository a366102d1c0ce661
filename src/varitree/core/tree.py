"""Variation tree: positions connected by moves, stored in an arena.

Nodes live in a flat list owned by :class:`VariationTree` and refer to each
other by integer id.  A parent link is just an index, so there are no
reference cycles and deleted subtrees are simply marked as detached.

Quick start::

    from varitree.core import ChessRuleEngine, VariationTree

    rules = ChessRuleEngine()
    tree = VariationTree()
    node = tree.add_move(tree.root, rules.play_san(tree.fen(tree.root), "e4"))
    assert tree.position_of(node) == [0]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from varitree.core.fen import STARTING_FEN
from varitree.core.rules import MoveInfo, PlayedMove

_LOGGER = logging.getLogger(__name__)

NodeId = int

ROOT_ID: NodeId = 0


@dataclass(slots=True)
class PositionNode:
    """A single position in the tree.

    ``fen`` and ``move`` are fixed at creation.  ``children`` is ordered:
    index 0 is the mainline continuation, the rest are side variations.
    """

    id: NodeId
    fen: str
    move: MoveInfo | None = None
    parent: NodeId | None = None
    children: list[NodeId] = field(default_factory=list)
    comment: str = ""
    starting_comment: str = ""
    nags: set[int] = field(default_factory=set)

    @property
    def is_root(self) -> bool:
        return self.parent is None


class VariationTree:
    """Single-rooted tree of positions with transposition-free siblings."""

    __slots__ = ("_nodes", "_detached")

    def __init__(self, fen: str = STARTING_FEN) -> None:
        self._nodes: list[PositionNode] = [PositionNode(id=ROOT_ID, fen=fen)]
        self._detached: set[NodeId] = set()

    @classmethod
    def from_fen(cls, fen: str) -> VariationTree:
        """Single-node tree rooted at *fen* (no history)."""
        return cls(fen)

    # ── Access ───────────────────────────────────────────────────────────

    @property
    def root(self) -> NodeId:
        return ROOT_ID

    def node(self, node_id: NodeId) -> PositionNode:
        if node_id in self._detached or not 0 <= node_id < len(self._nodes):
            raise KeyError(f"Unknown node id: {node_id}")
        return self._nodes[node_id]

    def fen(self, node_id: NodeId) -> str:
        return self.node(node_id).fen

    def parent(self, node_id: NodeId) -> NodeId | None:
        return self.node(node_id).parent

    def children(self, node_id: NodeId) -> tuple[NodeId, ...]:
        return tuple(self.node(node_id).children)

    def is_attached(self, node_id: NodeId) -> bool:
        return node_id not in self._detached and 0 <= node_id < len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return isinstance(node_id, int) and self.is_attached(node_id)

    def __len__(self) -> int:
        return len(self._nodes) - len(self._detached)

    # ── Move application ─────────────────────────────────────────────────

    def find_child(self, node_id: NodeId, fen: str) -> NodeId | None:
        """Return the child of *node_id* whose board state is *fen*."""
        for child_id in self.node(node_id).children:
            if self._nodes[child_id].fen == fen:
                return child_id
        return None

    def add_move(self, node_id: NodeId, played: PlayedMove) -> NodeId:
        """Merge *played* into an existing child or append a new one.

        A child that already holds ``played.fen_after`` is reused as is, so
        the annotations of the existing branch win.  New branches go last.
        """
        parent = self.node(node_id)
        if played.fen_before != parent.fen:
            raise ValueError(
                f"Move {played.move.san} was computed for {played.fen_before!r}, "
                f"not for node {node_id} ({parent.fen!r})"
            )

        existing = self.find_child(node_id, played.fen_after)
        if existing is not None:
            return existing

        child = PositionNode(
            id=len(self._nodes),
            fen=played.fen_after,
            move=played.move,
            parent=node_id,
        )
        self._nodes.append(child)
        parent.children.append(child.id)
        return child.id

    def add_line(self, node_id: NodeId, moves: Iterable[PlayedMove]) -> NodeId:
        """Apply *moves* one after another from *node_id*; return the last node."""
        current = node_id
        for played in moves:
            current = self.add_move(current, played)
        return current

    # ── Navigation ───────────────────────────────────────────────────────

    def top(self, node_id: NodeId) -> NodeId:
        current = self.node(node_id)
        while current.parent is not None:
            current = self._nodes[current.parent]
        return current.id

    def bottom(self, node_id: NodeId) -> NodeId:
        current = self.node(node_id)
        while current.children:
            current = self._nodes[current.children[0]]
        return current.id

    def position_of(self, node_id: NodeId) -> list[int]:
        """Child indices leading from the root to *node_id*."""
        path: list[int] = []
        current = self.node(node_id)
        while current.parent is not None:
            parent = self._nodes[current.parent]
            path.append(parent.children.index(current.id))
            current = parent
        path.reverse()
        return path

    def go_to_position(
        self, path: Sequence[int], start: NodeId | None = None
    ) -> NodeId:
        """Follow *path* from *start* (the root by default).

        An index the tree does not have stops the walk at the deepest node
        reached so far.
        """
        current = self.node(self.root if start is None else start)
        for depth, index in enumerate(path):
            if not 0 <= index < len(current.children):
                _LOGGER.warning(
                    "Position path %s out of range at depth %d; clamped to node %d",
                    list(path),
                    depth,
                    current.id,
                )
                break
            current = self._nodes[current.children[index]]
        return current.id

    def mainline(self, node_id: NodeId | None = None) -> list[NodeId]:
        """*node_id* followed by its index-0 descendants."""
        current = self.node(self.root if node_id is None else node_id)
        line = [current.id]
        while current.children:
            current = self._nodes[current.children[0]]
            line.append(current.id)
        return line

    def line_to(self, node_id: NodeId) -> list[NodeId]:
        """Nodes from the root's child down to *node_id* (root excluded)."""
        line: list[NodeId] = []
        current = self.node(node_id)
        while current.parent is not None:
            line.append(current.id)
            current = self._nodes[current.parent]
        line.reverse()
        return line

    def moves_to(self, node_id: NodeId) -> list[MoveInfo]:
        moves: list[MoveInfo] = []
        for line_id in self.line_to(node_id):
            move = self._nodes[line_id].move
            assert move is not None
            moves.append(move)
        return moves

    def walk(self, start: NodeId | None = None) -> Iterator[NodeId]:
        """Pre-order traversal, mainline child first."""
        stack = [self.node(self.root if start is None else start).id]
        while stack:
            node_id = stack.pop()
            yield node_id
            stack.extend(reversed(self._nodes[node_id].children))

    # ── Editing ──────────────────────────────────────────────────────────

    def delete_variation(self, node_id: NodeId) -> NodeId | None:
        """Detach *node_id* and its subtree; return the former parent.

        The root cannot be deleted: nothing happens and ``None`` is returned.
        """
        node = self.node(node_id)
        if node.parent is None:
            return None
        parent = self._nodes[node.parent]
        parent.children.remove(node_id)
        self._detached.update(self.walk(node_id))
        return parent.id

    def promote_variation(self, node_id: NodeId) -> None:
        """Make *node_id* the mainline at its branch point."""
        node = self.node(node_id)
        if node.parent is None:
            return
        siblings = self._nodes[node.parent].children
        siblings.remove(node_id)
        siblings.insert(0, node_id)
