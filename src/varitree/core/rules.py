"""Rule engine: move legality and raw board editing.

The tree never inspects chess rules itself.  It hands a FEN and a candidate
move to an :class:`IRuleEngine` and stores whatever board state comes back.
:class:`ChessRuleEngine` is the local implementation on top of python-chess.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import chess

from varitree.core.errors import IllegalMoveError, UnparseableBoardError

_PROMOTION_TYPES = (chess.KNIGHT, chess.BISHOP, chess.ROOK, chess.QUEEN)


@dataclass(slots=True, frozen=True)
class MoveInfo:
    """The move that produced a node from its parent."""

    from_square: chess.Square
    to_square: chess.Square
    promotion: chess.PieceType | None
    san: str

    def to_move(self) -> chess.Move:
        return chess.Move(self.from_square, self.to_square, self.promotion)

    @property
    def uci(self) -> str:
        return self.to_move().uci()

    @classmethod
    def from_move(cls, board: chess.Board, move: chess.Move) -> MoveInfo:
        """Describe *move* as played from *board* (before pushing it)."""
        return cls(
            from_square=move.from_square,
            to_square=move.to_square,
            promotion=move.promotion,
            san=board.san(move),
        )


@dataclass(slots=True, frozen=True)
class PlayedMove:
    """Rule-engine answer: a validated move and the board state it leads to."""

    fen_before: str
    fen_after: str
    move: MoveInfo


def parse_move(
    from_square: str, to_square: str, promotion: str | None = None
) -> chess.Move:
    """Build a :class:`chess.Move` from square names and a promotion letter."""
    try:
        origin = chess.parse_square(from_square)
        target = chess.parse_square(to_square)
    except ValueError as exc:
        raise IllegalMoveError(
            f"Invalid square in move {from_square}{to_square}"
        ) from exc

    piece_type: chess.PieceType | None = None
    if promotion:
        symbol = promotion.lower()
        if symbol not in chess.PIECE_SYMBOLS[1:]:
            raise IllegalMoveError(f"Invalid promotion piece: {promotion!r}")
        piece_type = chess.PIECE_SYMBOLS.index(symbol)
        if piece_type not in _PROMOTION_TYPES:
            raise IllegalMoveError(f"Cannot promote to {promotion!r}")
    return chess.Move(origin, target, promotion=piece_type)


class IRuleEngine(ABC):
    """Validates and executes moves against a board state."""

    @abstractmethod
    def normalize_fen(self, fen: str) -> str:
        """Return the canonical form of *fen*; raise if it cannot be read."""

    @abstractmethod
    def can_parse(self, fen: str) -> bool:
        """Return True if *fen* is a legal position moves can be played from."""

    @abstractmethod
    def play(self, fen: str, move: chess.Move) -> PlayedMove:
        """Play a legal *move*; raise :class:`IllegalMoveError` otherwise."""

    @abstractmethod
    def play_san(self, fen: str, san: str) -> PlayedMove:
        """Resolve and play a SAN token."""

    @abstractmethod
    def raw_move(self, fen: str, move: chess.Move) -> str:
        """Move a piece without any legality check and return the new FEN."""

    @abstractmethod
    def put_piece(self, fen: str, square: chess.Square, piece: chess.Piece) -> str:
        """Place *piece* on *square* and return the new FEN."""

    @abstractmethod
    def remove_piece(self, fen: str, square: chess.Square) -> str:
        """Clear *square* and return the new FEN."""


class ChessRuleEngine(IRuleEngine):
    """Local rule engine backed by python-chess."""

    __slots__ = ()

    def board(self, fen: str) -> chess.Board:
        """Read *fen* without checking that the position is legal."""
        try:
            return chess.Board(fen)
        except ValueError as exc:
            raise UnparseableBoardError(f"Invalid FEN: {fen!r}", fen=fen) from exc

    def normalize_fen(self, fen: str) -> str:
        return self.board(fen).fen()

    def can_parse(self, fen: str) -> bool:
        try:
            board = self.board(fen)
        except UnparseableBoardError:
            return False
        return board.is_valid()

    def play(self, fen: str, move: chess.Move) -> PlayedMove:
        board = self._legal_board(fen)
        if not board.is_legal(move):
            raise IllegalMoveError(f"Illegal move {move.uci()} in {fen}", fen=fen)
        return self._push(fen, board, move)

    def play_san(self, fen: str, san: str) -> PlayedMove:
        board = self._legal_board(fen)
        try:
            move = board.parse_san(san)
        except ValueError as exc:
            raise IllegalMoveError(f"Illegal move {san!r}: {exc}", fen=fen) from exc
        if not move:
            raise IllegalMoveError(f"Null move {san!r} is not supported", fen=fen)
        return self._push(fen, board, move)

    def raw_move(self, fen: str, move: chess.Move) -> str:
        board = self.board(fen)
        piece = board.remove_piece_at(move.from_square)
        if piece is None:
            raise IllegalMoveError(
                f"No piece on {chess.square_name(move.from_square)}", fen=fen
            )
        if move.promotion is not None:
            piece = chess.Piece(move.promotion, piece.color)
        board.set_piece_at(move.to_square, piece)
        board.ep_square = None
        return board.fen()

    def put_piece(self, fen: str, square: chess.Square, piece: chess.Piece) -> str:
        board = self.board(fen)
        board.set_piece_at(square, piece)
        board.ep_square = None
        return board.fen()

    def remove_piece(self, fen: str, square: chess.Square) -> str:
        board = self.board(fen)
        board.remove_piece_at(square)
        board.ep_square = None
        return board.fen()

    # ── Internal helpers ─────────────────────────────────────────────────

    def _legal_board(self, fen: str) -> chess.Board:
        board = self.board(fen)
        if not board.is_valid():
            raise UnparseableBoardError(
                f"Position is not legal ({board.status()!r}): {fen}", fen=fen
            )
        return board

    @staticmethod
    def _push(fen: str, board: chess.Board, move: chess.Move) -> PlayedMove:
        info = MoveInfo.from_move(board, move)
        board.push(move)
        return PlayedMove(fen_before=fen, fen_after=board.fen(), move=info)
