"""Core layer: rule engine, variation tree and PGN codec.

Quick start::

    from varitree.core import ChessRuleEngine, VariationTree, parse_pgn, write_pgn

    game = parse_pgn("1. e4 (1. d4 d5) 1... e5 *")
    tree = game.tree
    assert tree.position_of(tree.bottom(tree.root)) == [0, 0]
    print(write_pgn(tree, game.headers))
"""

from varitree.core.errors import (
    IllegalMoveError,
    ParseError,
    UnparseableBoardError,
    VaritreeError,
)
from varitree.core.fen import STARTING_FEN
from varitree.core.rules import (
    ChessRuleEngine,
    IRuleEngine,
    MoveInfo,
    PlayedMove,
    parse_move,
)
from varitree.core.tree import NodeId, PositionNode, VariationTree
from varitree.core.notation import ParsedGame, PgnOptions, parse_pgn, write_pgn

__all__ = [
    # Errors
    "IllegalMoveError",
    "ParseError",
    "UnparseableBoardError",
    "VaritreeError",
    # Rules
    "STARTING_FEN",
    "ChessRuleEngine",
    "IRuleEngine",
    "MoveInfo",
    "PlayedMove",
    "parse_move",
    # Tree
    "NodeId",
    "PositionNode",
    "VariationTree",
    # Notation
    "ParsedGame",
    "PgnOptions",
    "parse_pgn",
    "write_pgn",
]
