"""AnalysisBoard: a variation tree plus a cursor and an edit mode.

Every user-facing action (play a move, step back, delete a branch, drop a
piece on the board) goes through this class.  Listeners subscribe to
:class:`BoardEvents` to redraw or to persist the board.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

import chess

from varitree.core.errors import IllegalMoveError, UnparseableBoardError
from varitree.core.fen import STARTING_FEN
from varitree.core.notation import ParsedGame, PgnOptions, parse_pgn, write_pgn
from varitree.core.notation.models import is_move_quality_nag
from varitree.core.rules import ChessRuleEngine, IRuleEngine, PlayedMove, parse_move
from varitree.core.tree import NodeId, PositionNode, VariationTree
from varitree.game.interfaces import EditMode

_LOGGER = logging.getLogger(__name__)

# ── Event definitions ────────────────────────────────────────────────────────

TreeCallback = Callable[[VariationTree], None]
CursorCallback = Callable[[NodeId], None]
ModeCallback = Callable[[EditMode], None]


@dataclass
class BoardEvents:
    """Observable callbacks. Multiple handlers per event."""

    on_tree_replaced: list[TreeCallback] = field(default_factory=list)
    on_tree_changed: list[TreeCallback] = field(default_factory=list)
    on_cursor_moved: list[CursorCallback] = field(default_factory=list)
    on_mode_changed: list[ModeCallback] = field(default_factory=list)


# ── Board ────────────────────────────────────────────────────────────────────


class AnalysisBoard:
    """Owns one variation tree and the node the user is looking at.

    Methods mirroring UI actions return ``bool`` (whether anything happened)
    rather than raising, the way a rejected move on a board simply snaps
    back.  Single-threaded: callers serialize access.
    """

    __slots__ = ("_rules", "_tree", "_cursor", "_mode", "headers", "events")

    def __init__(
        self,
        rules: IRuleEngine | None = None,
        *,
        headers: dict[str, str] | None = None,
        fen: str | None = None,
    ) -> None:
        self._rules = rules or ChessRuleEngine()
        start_fen = STARTING_FEN if fen is None else self._rules.normalize_fen(fen)
        self._tree = VariationTree(start_fen)
        self._cursor = self._tree.root
        self._mode = EditMode.NORMAL
        self.headers: dict[str, str] = dict(headers or {})
        self.events = BoardEvents()

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def rules(self) -> IRuleEngine:
        return self._rules

    @property
    def tree(self) -> VariationTree:
        return self._tree

    @property
    def cursor(self) -> NodeId:
        return self._cursor

    @property
    def current(self) -> PositionNode:
        return self._tree.node(self._cursor)

    @property
    def fen(self) -> str:
        return self._tree.fen(self._cursor)

    @property
    def mode(self) -> EditMode:
        return self._mode

    @property
    def position_path(self) -> list[int]:
        return self._tree.position_of(self._cursor)

    # ── Edit mode ────────────────────────────────────────────────────────

    def set_edit_mode(self, mode: EditMode) -> None:
        if mode == self._mode:
            return
        self._mode = mode
        for cb in self.events.on_mode_changed:
            cb(mode)

    def toggle_edit_mode(self) -> EditMode:
        self.set_edit_mode(
            EditMode.NORMAL if self._mode == EditMode.RAW_EDIT else EditMode.RAW_EDIT
        )
        return self._mode

    # ── Moves ────────────────────────────────────────────────────────────

    def make_move(
        self, from_square: str, to_square: str, promotion: str | None = None
    ) -> bool:
        """Play a move from the cursor.

        In raw edit mode, or when the current position is not legal, the
        piece is moved without validation and the tree restarts from the
        result.  Otherwise the move grows (or reuses) a branch.
        """
        try:
            move = parse_move(from_square, to_square, promotion)
        except IllegalMoveError as exc:
            _LOGGER.debug("Rejected move input: %s", exc)
            return False

        fen = self.fen
        if self._mode == EditMode.RAW_EDIT or not self._rules.can_parse(fen):
            try:
                new_fen = self._rules.raw_move(fen, move)
            except IllegalMoveError as exc:
                _LOGGER.debug("Rejected raw move: %s", exc)
                return False
            self._restart_from(new_fen, reason="raw move")
            return True

        try:
            played = self._rules.play(fen, move)
        except IllegalMoveError as exc:
            _LOGGER.debug("Rejected move: %s", exc)
            return False
        self._graft([played])
        return True

    def apply_played_move(self, played: PlayedMove) -> bool:
        """Graft a move resolved elsewhere (e.g. on a worker thread).

        The move is dropped if the cursor has moved on or the board is being
        edited since the move was requested.
        """
        if self._mode == EditMode.RAW_EDIT or played.fen_before != self.fen:
            _LOGGER.debug("Discarding stale move %s", played.move.san)
            return False
        self._graft([played])
        return True

    def make_moves(self, sans: Iterable[str]) -> NodeId:
        """Graft a whole SAN line from the cursor and move to its end.

        The line is resolved before anything is added, so an illegal move
        raises :class:`IllegalMoveError` with the tree untouched.
        """
        if self._mode == EditMode.RAW_EDIT:
            raise IllegalMoveError(
                "Cannot apply a move sequence in raw edit mode", fen=self.fen
            )

        fen = self.fen
        line: list[PlayedMove] = []
        for san in sans:
            try:
                played = self._rules.play_san(fen, san)
            except UnparseableBoardError as exc:
                raise IllegalMoveError(str(exc), fen=fen) from exc
            line.append(played)
            fen = played.fen_after

        self._graft(line)
        return self._cursor

    # ── Variation editing ────────────────────────────────────────────────

    def delete_variation(self, node_id: NodeId | None = None) -> bool:
        """Delete the branch starting at *node_id* (the cursor by default)."""
        target = self._cursor if node_id is None else node_id
        parent = self._tree.delete_variation(target)
        if parent is None:
            return False
        # The cursor must be valid again before listeners look at the tree.
        cursor_lost = not self._tree.is_attached(self._cursor)
        if cursor_lost:
            self._cursor = parent
        self._emit_tree_changed()
        if cursor_lost:
            for cb in self.events.on_cursor_moved:
                cb(parent)
        return True

    def promote_variation(self, node_id: NodeId | None = None) -> bool:
        """Make the branch at *node_id* (the cursor by default) the mainline."""
        target = self._cursor if node_id is None else node_id
        if self._tree.parent(target) is None:
            return False
        self._tree.promote_variation(target)
        self._emit_tree_changed()
        return True

    # ── Board editing ────────────────────────────────────────────────────

    def add_piece(self, square: str, piece: str) -> bool:
        """Put *piece* (a symbol such as ``"N"`` or ``"q"``) on *square*."""
        try:
            target = chess.parse_square(square)
            placed = chess.Piece.from_symbol(piece)
        except ValueError as exc:
            _LOGGER.debug("Rejected piece placement %s@%s: %s", piece, square, exc)
            return False
        self._restart_from(
            self._rules.put_piece(self.fen, target, placed), reason="piece placed"
        )
        return True

    def remove_piece(self, square: str) -> bool:
        try:
            target = chess.parse_square(square)
        except ValueError as exc:
            _LOGGER.debug("Rejected piece removal at %s: %s", square, exc)
            return False
        self._restart_from(
            self._rules.remove_piece(self.fen, target), reason="piece removed"
        )
        return True

    def reset_to_fen(self, fen: str) -> None:
        """Start over from *fen*; raise :class:`UnparseableBoardError` if unreadable."""
        self._restart_from(self._rules.normalize_fen(fen), reason="reset to FEN")

    # ── Annotations ──────────────────────────────────────────────────────

    def set_comment(self, text: str) -> None:
        self.current.comment = " ".join(text.split())
        self._emit_tree_changed()

    def toggle_nag(self, nag: int) -> bool:
        """Toggle *nag* on the current move.

        Move-quality glyphs are exclusive: setting ``!`` clears ``?!``.
        """
        node = self.current
        if node.move is None:
            return False
        if nag in node.nags:
            node.nags.discard(nag)
        else:
            if is_move_quality_nag(nag):
                node.nags = {n for n in node.nags if not is_move_quality_nag(n)}
            node.nags.add(nag)
        self._emit_tree_changed()
        return True

    def clear_annotations(self) -> None:
        node = self.current
        node.comment = ""
        node.starting_comment = ""
        node.nags.clear()
        self._emit_tree_changed()

    # ── Navigation ───────────────────────────────────────────────────────

    def go_to(self, node_id: NodeId) -> None:
        self._tree.node(node_id)
        self._set_cursor(node_id)

    def go_to_position(self, path: Sequence[int]) -> NodeId:
        self._set_cursor(self._tree.go_to_position(path))
        return self._cursor

    def undo_move(self) -> bool:
        parent = self._tree.parent(self._cursor)
        if parent is None:
            return False
        self._set_cursor(parent)
        return True

    def redo_move(self) -> bool:
        children = self._tree.children(self._cursor)
        if not children:
            return False
        self._set_cursor(children[0])
        return True

    def go_to_start(self) -> None:
        self._set_cursor(self._tree.top(self._cursor))

    def go_to_end(self) -> None:
        self._set_cursor(self._tree.bottom(self._cursor))

    # ── PGN ──────────────────────────────────────────────────────────────

    def pgn(self, options: PgnOptions | None = None) -> str:
        """The whole tree, from the root, as PGN."""
        return write_pgn(self._tree, self.headers, options)

    def load_pgn(self, pgn_text: str, path: Sequence[int] = ()) -> ParsedGame:
        """Replace the tree with a parsed game; raise ``ParseError`` if invalid."""
        game = parse_pgn(pgn_text, self._rules)
        self.load_game(game, path)
        return game

    def load_game(self, game: ParsedGame, path: Sequence[int] = ()) -> None:
        self.headers = dict(game.headers)
        self._replace_tree(game.tree, game.tree.go_to_position(path))

    # ── Internal helpers ─────────────────────────────────────────────────

    def _graft(self, line: Sequence[PlayedMove]) -> None:
        size = len(self._tree)
        node_id = self._tree.add_line(self._cursor, line)
        if len(self._tree) != size:
            self._emit_tree_changed()
        self._set_cursor(node_id)

    def _restart_from(self, fen: str, *, reason: str) -> None:
        _LOGGER.info("Restarting tree (%s) at %s", reason, fen)
        self._replace_tree(VariationTree.from_fen(fen), None)

    def _replace_tree(self, tree: VariationTree, cursor: NodeId | None) -> None:
        self._tree = tree
        self._cursor = tree.root if cursor is None else cursor
        for cb in self.events.on_tree_replaced:
            cb(tree)
        for cursor_cb in self.events.on_cursor_moved:
            cursor_cb(self._cursor)

    def _set_cursor(self, node_id: NodeId) -> None:
        if node_id == self._cursor:
            return
        self._cursor = node_id
        for cb in self.events.on_cursor_moved:
            cb(node_id)

    def _emit_tree_changed(self) -> None:
        for cb in self.events.on_tree_changed:
            cb(self._tree)
