"""PGN parsing and serialization for variation trees."""

from __future__ import annotations

import logging
import re

import chess

from varitree.core.errors import IllegalMoveError, ParseError, UnparseableBoardError
from varitree.core.fen import STARTING_FEN, fen_fullmove_number, fen_turn, is_starting_fen
from varitree.core.notation.models import (
    GLYPH_BY_NAG,
    NAG_BY_GLYPH,
    RESULT_TOKENS,
    ParsedGame,
    PgnOptions,
    is_move_quality_nag,
)
from varitree.core.rules import ChessRuleEngine, IRuleEngine
from varitree.core.tree import NodeId, PositionNode, VariationTree

_LOGGER = logging.getLogger(__name__)

_PGN_HEADER_RE = re.compile(r'^\[(\w+)\s+"((?:[^"\\]|\\.)*)"\]\s*$')
_ESCAPE_LINE_RE = re.compile(r"^%[^\n]*", re.MULTILINE)
_MOVETEXT_TOKEN_RE = re.compile(
    r"""
      (?P<comment>\{[^}]*\}?)
    | (?P<line_comment>;[^\n]*)
    | (?P<open>\()
    | (?P<close>\))
    | (?P<nag>\$\d+)
    | (?P<result>(?:1-0|0-1|1/2-1/2|\*)(?=[\s(){};]|$))
    | (?P<number>\d+\.+)
    | (?P<glyph>[!?]{1,2})
    | (?P<move>[^\s{}();$!?]+[!?]{0,2})
    | (?P<junk>\S)
    """,
    re.VERBOSE,
)
_MOVE_SUFFIX_RE = re.compile(r"[!?]{1,2}$")


# ── Parsing ──────────────────────────────────────────────────────────────────


def _parse_headers(text: str) -> tuple[dict[str, str], dict[str, int], int]:
    """Read the tag-pair section; return headers, their offsets and body start."""
    headers: dict[str, str] = {}
    offsets: dict[str, int] = {}
    pos = 0
    total = len(text)

    while pos < total:
        end = text.find("\n", pos)
        end = total if end < 0 else end + 1
        raw_line = text[pos:end]
        line = raw_line.strip()
        if line and not line.startswith("["):
            break
        if line:
            match = _PGN_HEADER_RE.match(line)
            line_offset = pos + raw_line.index("[")
            if match is None:
                raise ParseError.at(text, line_offset, "Invalid PGN header", line)
            key, raw_value = match.groups()
            headers[key] = raw_value.replace('\\"', '"').replace("\\\\", "\\")
            offsets[key] = line_offset
        pos = end

    return headers, offsets, pos


def _clean_comment(comment: str) -> str:
    return " ".join(comment.split())


def _join_comment(existing: str, comment: str) -> str:
    clean = _clean_comment(comment)
    if not clean:
        return existing
    return f"{existing} {clean}" if existing else clean


class _MovetextParser:
    """Feeds movetext tokens into a :class:`VariationTree`."""

    __slots__ = (
        "_text",
        "_tree",
        "_rules",
        "_current",
        "_moves_in_line",
        "_stack",
        "_pending_comment",
        "result",
    )

    def __init__(self, text: str, tree: VariationTree, rules: IRuleEngine) -> None:
        self._text = text
        self._tree = tree
        self._rules = rules
        self._current: NodeId = tree.root
        self._moves_in_line = 0
        # (node to resume, moves already in that line, offset of "(")
        self._stack: list[tuple[NodeId, int, int]] = []
        self._pending_comment = ""
        self.result: str | None = None

    def parse(self, body_start: int) -> None:
        text = _ESCAPE_LINE_RE.sub(lambda m: " " * len(m.group(0)), self._text)
        for match in _MOVETEXT_TOKEN_RE.finditer(text, body_start):
            kind = match.lastgroup
            token = match.group()
            offset = match.start()

            if self.result is not None:
                raise self._error(offset, "Unexpected text after game result", token)

            if kind == "comment":
                if not token.endswith("}"):
                    raise self._error(offset, "Unterminated comment", token[:20])
                self._on_comment(token[1:-1])
            elif kind == "line_comment":
                self._on_comment(token[1:])
            elif kind == "open":
                self._on_open(offset)
            elif kind == "close":
                self._on_close(offset)
            elif kind == "nag":
                self._on_nag(offset, token, int(token[1:]))
            elif kind == "glyph":
                self._on_nag(offset, token, NAG_BY_GLYPH[token])
            elif kind == "result":
                if self._stack:
                    raise self._error(offset, "Game result inside a variation", token)
                self.result = token
            elif kind == "number":
                continue
            elif kind == "move":
                self._on_move(offset, token)
            else:
                raise self._error(offset, "Unexpected character", token)

        if self._stack:
            _, _, open_offset = self._stack[-1]
            raise self._error(open_offset, "Unterminated variation", "(")

    # ── Token handlers ───────────────────────────────────────────────────

    def _on_move(self, offset: int, token: str) -> None:
        san = token.lstrip(".")
        if not san:
            return
        glyph = ""
        suffix = _MOVE_SUFFIX_RE.search(san)
        if suffix is not None:
            glyph = suffix.group()
            san = san[: suffix.start()]

        fen = self._tree.fen(self._current)
        try:
            played = self._rules.play_san(fen, san)
        except (IllegalMoveError, UnparseableBoardError) as exc:
            raise self._error(offset, "Illegal move", token) from exc

        node = self._tree.node(self._tree.add_move(self._current, played))
        if glyph:
            node.nags.add(NAG_BY_GLYPH[glyph])
        if self._pending_comment:
            node.starting_comment = _join_comment(
                node.starting_comment, self._pending_comment
            )
            self._pending_comment = ""
        self._current = node.id
        self._moves_in_line += 1

    def _on_comment(self, comment: str) -> None:
        if self._moves_in_line:
            node = self._tree.node(self._current)
            node.comment = _join_comment(node.comment, comment)
        elif not self._stack:
            root = self._tree.node(self._tree.root)
            root.comment = _join_comment(root.comment, comment)
        else:
            self._pending_comment = _join_comment(self._pending_comment, comment)

    def _on_open(self, offset: int) -> None:
        if not self._moves_in_line:
            raise self._error(offset, "Variation without a preceding move", "(")
        parent = self._tree.parent(self._current)
        assert parent is not None
        self._stack.append((self._current, self._moves_in_line, offset))
        self._current = parent
        self._moves_in_line = 0

    def _on_close(self, offset: int) -> None:
        if not self._stack:
            raise self._error(offset, "Unbalanced closing parenthesis", ")")
        if not self._moves_in_line:
            raise self._error(offset, "Empty variation", ")")
        self._current, self._moves_in_line, _ = self._stack.pop()
        self._pending_comment = ""

    def _on_nag(self, offset: int, token: str, nag: int) -> None:
        if not self._moves_in_line:
            raise self._error(offset, "Annotation without a move", token)
        self._tree.node(self._current).nags.add(nag)

    def _error(self, offset: int, message: str, token: str) -> ParseError:
        return ParseError.at(self._text, offset, message, token)


def parse_pgn(pgn_text: str, rules: IRuleEngine | None = None) -> ParsedGame:
    """Parse a single PGN game, variations included, into a tree.

    Raises :class:`ParseError` on malformed headers, unbalanced variations or
    a move the rule engine rejects.  No partial tree is returned.
    """
    rules = rules or ChessRuleEngine()
    headers, offsets, body_start = _parse_headers(pgn_text)

    # An illegal but readable position is a valid root; only moves played
    # from it are rejected.
    start_fen = STARTING_FEN
    if "FEN" in headers:
        try:
            start_fen = rules.normalize_fen(headers["FEN"])
        except UnparseableBoardError as exc:
            raise ParseError.at(
                pgn_text, offsets["FEN"], "Invalid FEN header", headers["FEN"]
            ) from exc

    tree = VariationTree(start_fen)
    parser = _MovetextParser(pgn_text, tree, rules)
    parser.parse(body_start)

    if parser.result is not None and "Result" not in headers:
        headers["Result"] = parser.result

    _LOGGER.debug("Parsed PGN with %d nodes", len(tree))
    return ParsedGame(headers=headers, tree=tree)


# ── Serialization ────────────────────────────────────────────────────────────


def _brace(comment: str) -> str:
    # PGN comments cannot contain a closing brace.
    return "{" + comment.replace("}", "]") + "}"


def _write_move(
    parent: PositionNode,
    child: PositionNode,
    options: PgnOptions,
    parts: list[str],
    force_number: bool,
) -> bool:
    """Append one move token; return True if the next move needs a number."""
    assert child.move is not None
    if options.comments and child.starting_comment:
        parts.append(_brace(child.starting_comment))
        force_number = True

    number = fen_fullmove_number(parent.fen)
    if fen_turn(parent.fen) == chess.WHITE:
        parts.append(f"{number}.")
    elif force_number:
        parts.append(f"{number}...")

    quality = sorted(nag for nag in child.nags if is_move_quality_nag(nag))
    san = child.move.san
    extra: list[int] = []
    if options.symbols and quality:
        san += GLYPH_BY_NAG[quality[0]]
        extra.extend(quality[1:])
    if options.special_symbols:
        extra.extend(nag for nag in child.nags if not is_move_quality_nag(nag))
    parts.append(san)
    parts.extend(f"${nag}" for nag in sorted(extra))

    if options.comments and child.comment:
        parts.append(_brace(child.comment))
        return True
    return False


def _write_line(
    tree: VariationTree,
    node_id: NodeId,
    options: PgnOptions,
    parts: list[str],
    force_number: bool,
) -> None:
    """Write the continuation after *node_id*, side variations included."""
    node = tree.node(node_id)
    while node.children:
        main = tree.node(node.children[0])
        force_number = _write_move(node, main, options, parts, force_number)

        for alt_id in node.children[1:]:
            alt = tree.node(alt_id)
            sub: list[str] = []
            alt_force = _write_move(node, alt, options, sub, True)
            _write_line(tree, alt_id, options, sub, alt_force)
            parts.append("(" + " ".join(sub) + ")")
            force_number = True

        node = main


def write_pgn(
    tree: VariationTree,
    headers: dict[str, str] | None = None,
    options: PgnOptions | None = None,
    node: NodeId | None = None,
) -> str:
    """Serialize *tree* from *node* (the root by default) to PGN text."""
    options = options or PgnOptions()
    start = tree.node(tree.root if node is None else node)

    headers_out = dict(headers or {})
    if is_starting_fen(start.fen):
        headers_out.pop("SetUp", None)
        headers_out.pop("FEN", None)
    else:
        headers_out["SetUp"] = "1"
        headers_out["FEN"] = start.fen
    result_token = headers_out.get("Result", "*")
    if result_token not in RESULT_TOKENS:
        result_token = "*"
        headers_out["Result"] = result_token

    parts: list[str] = []
    if options.comments and start.comment:
        parts.append(_brace(start.comment))
    _write_line(tree, start.id, options, parts, True)
    parts.append(result_token)

    lines: list[str] = []
    if options.headers and headers_out:
        for key, value in headers_out.items():
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            lines.append(f'[{key} "{escaped}"]')
        lines.append("")
    lines.append(" ".join(parts))
    lines.append("")
    return "\n".join(lines)
