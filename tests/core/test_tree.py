"""Tests for the variation tree arena."""

from __future__ import annotations

import logging

import chess
import pytest

from varitree.core.fen import STARTING_FEN
from varitree.core.rules import ChessRuleEngine
from varitree.core.tree import ROOT_ID, NodeId, VariationTree

_RULES = ChessRuleEngine()


def _play(tree: VariationTree, node_id: NodeId, *sans: str) -> NodeId:
    current = node_id
    for san in sans:
        current = tree.add_move(current, _RULES.play_san(tree.fen(current), san))
    return current


def _fen_after(*sans: str) -> str:
    board = chess.Board()
    for san in sans:
        board.push_san(san)
    return board.fen()


def _branched_tree() -> tuple[VariationTree, dict[str, NodeId]]:
    """1.e4 (1.d4 d5) (1.c4) e5 2.Nf3 (2.Bc4)."""
    tree = VariationTree()
    e4 = _play(tree, tree.root, "e4")
    d4 = _play(tree, tree.root, "d4")
    d5 = _play(tree, d4, "d5")
    c4 = _play(tree, tree.root, "c4")
    e5 = _play(tree, e4, "e5")
    nf3 = _play(tree, e5, "Nf3")
    bc4 = _play(tree, e5, "Bc4")
    return tree, {
        "e4": e4,
        "d4": d4,
        "d5": d5,
        "c4": c4,
        "e5": e5,
        "Nf3": nf3,
        "Bc4": bc4,
    }


class TestConstruction:
    def test_default_root_is_starting_position(self) -> None:
        tree = VariationTree()
        assert tree.root == ROOT_ID
        assert tree.fen(tree.root) == STARTING_FEN
        assert tree.node(tree.root).is_root
        assert len(tree) == 1

    def test_from_fen_has_no_history(self) -> None:
        fen = "4k3/8/8/8/8/8/8/4K2R w K - 0 1"
        tree = VariationTree.from_fen(fen)
        root = tree.node(tree.root)
        assert root.fen == fen
        assert root.parent is None
        assert root.children == []
        assert root.move is None

    def test_unknown_id_raises_key_error(self) -> None:
        tree = VariationTree()
        with pytest.raises(KeyError):
            tree.node(42)
        assert 42 not in tree


class TestAddMove:
    def test_first_move_becomes_mainline(self) -> None:
        tree = VariationTree()
        e4 = _play(tree, tree.root, "e4")
        assert tree.children(tree.root) == (e4,)
        assert tree.parent(e4) == tree.root
        assert tree.fen(e4) == _fen_after("e4")
        move = tree.node(e4).move
        assert move is not None and move.san == "e4" and move.uci == "e2e4"

    def test_new_branch_is_appended_last(self) -> None:
        tree, ids = _branched_tree()
        assert tree.children(tree.root) == (ids["e4"], ids["d4"], ids["c4"])

    def test_same_move_reuses_existing_child(self) -> None:
        tree, ids = _branched_tree()
        size = len(tree)
        assert _play(tree, tree.root, "d4") == ids["d4"]
        assert len(tree) == size

    def test_transposition_merges_on_equal_board_state(self) -> None:
        # 1.Nf3 Nf6 2.Nc3 and 1.Nc3 Nf6 2.Nf3 reach the same board, but as
        # children of different parents, so they stay separate nodes.
        tree = VariationTree()
        a = _play(tree, tree.root, "Nf3", "Nf6", "Nc3")
        b = _play(tree, tree.root, "Nc3", "Nf6", "Nf3")
        assert a != b
        assert tree.fen(a) == tree.fen(b)

    def test_merge_keeps_existing_annotations(self) -> None:
        tree = VariationTree()
        e4 = _play(tree, tree.root, "e4")
        tree.node(e4).comment = "best by test"
        tree.node(e4).nags.add(1)

        again = _play(tree, tree.root, "e4")

        assert again == e4
        assert tree.node(e4).comment == "best by test"
        assert tree.node(e4).nags == {1}

    def test_siblings_never_share_a_board_state(self) -> None:
        tree, _ = _branched_tree()
        _play(tree, tree.root, "e4", "e5", "Nf3")
        _play(tree, tree.root, "d4", "d5")
        for node_id in tree.walk():
            fens = [tree.fen(child) for child in tree.children(node_id)]
            assert len(fens) == len(set(fens))

    def test_move_for_other_position_is_rejected(self) -> None:
        tree = VariationTree()
        e4 = _play(tree, tree.root, "e4")
        played = _RULES.play_san(STARTING_FEN, "d4")
        with pytest.raises(ValueError, match="was computed for"):
            tree.add_move(e4, played)

    def test_moves_to_replays_to_node(self) -> None:
        tree, ids = _branched_tree()
        for node_id in (ids["Bc4"], ids["d5"], ids["c4"], tree.root):
            board = chess.Board(tree.fen(tree.root))
            for move in tree.moves_to(node_id):
                assert board.san(move.to_move()) == move.san
                board.push(move.to_move())
            assert board.fen() == tree.fen(node_id)

    def test_add_line_returns_last_node(self) -> None:
        tree = VariationTree()
        fen = tree.fen(tree.root)
        line = []
        for san in ("e4", "e5", "Nf3"):
            played = _RULES.play_san(fen, san)
            line.append(played)
            fen = played.fen_after
        last = tree.add_line(tree.root, line)
        assert tree.fen(last) == _fen_after("e4", "e5", "Nf3")
        assert [m.san for m in tree.moves_to(last)] == ["e4", "e5", "Nf3"]


class TestNavigation:
    def test_top_and_bottom(self) -> None:
        tree, ids = _branched_tree()
        assert tree.top(ids["Bc4"]) == tree.root
        assert tree.bottom(tree.root) == ids["Nf3"]
        assert tree.bottom(ids["d4"]) == ids["d5"]
        assert tree.bottom(ids["c4"]) == ids["c4"]

    def test_position_of(self) -> None:
        tree, ids = _branched_tree()
        assert tree.position_of(tree.root) == []
        assert tree.position_of(ids["Nf3"]) == [0, 0, 0]
        assert tree.position_of(ids["Bc4"]) == [0, 0, 1]
        assert tree.position_of(ids["d5"]) == [1, 0]
        assert tree.position_of(ids["c4"]) == [2]

    def test_go_to_position_inverts_position_of(self) -> None:
        tree, _ = _branched_tree()
        for node_id in tree.walk():
            found = tree.go_to_position(tree.position_of(node_id))
            assert tree.fen(found) == tree.fen(node_id)

    def test_go_to_position_from_start_node(self) -> None:
        tree, ids = _branched_tree()
        assert tree.go_to_position([1], start=ids["e5"]) == ids["Bc4"]

    @pytest.mark.parametrize("path", [[0, 0, 5], [0, 0, -1], [0, 0, 0, 0, 0]])
    def test_go_to_position_clamps_and_warns(
        self, path: list[int], caplog: pytest.LogCaptureFixture
    ) -> None:
        tree, ids = _branched_tree()
        with caplog.at_level(logging.WARNING, logger="varitree.core.tree"):
            found = tree.go_to_position(path)
        expected = ids["e5"] if len(path) == 3 else ids["Nf3"]
        assert found == expected
        assert "out of range" in caplog.text

    def test_mainline_and_line_to(self) -> None:
        tree, ids = _branched_tree()
        assert tree.mainline() == [tree.root, ids["e4"], ids["e5"], ids["Nf3"]]
        assert tree.mainline(ids["d4"]) == [ids["d4"], ids["d5"]]
        assert tree.line_to(ids["Bc4"]) == [ids["e4"], ids["e5"], ids["Bc4"]]
        assert tree.line_to(tree.root) == []

    def test_walk_is_preorder_mainline_first(self) -> None:
        tree, ids = _branched_tree()
        assert list(tree.walk()) == [
            tree.root,
            ids["e4"],
            ids["e5"],
            ids["Nf3"],
            ids["Bc4"],
            ids["d4"],
            ids["d5"],
            ids["c4"],
        ]


class TestDeleteVariation:
    def test_removes_subtree_and_keeps_sibling_order(self) -> None:
        tree, ids = _branched_tree()
        parent = tree.delete_variation(ids["d4"])

        assert parent == tree.root
        assert tree.children(tree.root) == (ids["e4"], ids["c4"])
        assert not tree.is_attached(ids["d4"])
        assert not tree.is_attached(ids["d5"])
        with pytest.raises(KeyError):
            tree.node(ids["d5"])
        assert len(tree) == 6

    def test_deleting_mainline_promotes_next_sibling(self) -> None:
        tree, ids = _branched_tree()
        tree.delete_variation(ids["e4"])
        assert tree.children(tree.root) == (ids["d4"], ids["c4"])
        assert tree.bottom(tree.root) == ids["d5"]

    def test_root_deletion_is_noop(self) -> None:
        tree, _ = _branched_tree()
        size = len(tree)
        assert tree.delete_variation(tree.root) is None
        assert len(tree) == size

    def test_ids_are_not_reused(self) -> None:
        tree, ids = _branched_tree()
        tree.delete_variation(ids["c4"])
        c4_again = _play(tree, tree.root, "c4")
        assert c4_again != ids["c4"]
        assert tree.is_attached(c4_again)


class TestPromoteVariation:
    def test_moves_branch_to_front(self) -> None:
        tree, ids = _branched_tree()
        tree.promote_variation(ids["c4"])
        assert tree.children(tree.root) == (ids["c4"], ids["e4"], ids["d4"])

    def test_keeps_children_multiset(self) -> None:
        tree, ids = _branched_tree()
        before = sorted(tree.children(ids["e5"]))
        tree.promote_variation(ids["Bc4"])
        assert tree.children(ids["e5"])[0] == ids["Bc4"]
        assert sorted(tree.children(ids["e5"])) == before

    def test_promoting_mainline_or_root_is_noop(self) -> None:
        tree, ids = _branched_tree()
        tree.promote_variation(ids["e4"])
        tree.promote_variation(tree.root)
        assert tree.children(tree.root) == (ids["e4"], ids["d4"], ids["c4"])
