"""
Position Oracle: the rules engine the search core talks to.

The search never touches python-chess directly. It consumes this small
contract instead: legal move generation, apply/undo, check and turn queries,
and FEN (de)serialization. python-chess does all the chess rules work; this
module only adapts its board to the shape the search expects.

Two scoped guards make the apply/undo discipline impossible to get wrong:

    with position.applied(move):
        score = -negamax(...)      # any return or exception still undoes

    with position.null_move():
        score = -negamax(...)      # side to move restored on exit

Every position handed out is validated; malformed or impossible setups raise
PositionParseError before a search ever starts.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, Iterator

import chess

from engine.errors import PositionParseError

STARTING_FEN: str = chess.STARTING_FEN


@dataclass(frozen=True)
class Move:
    """
    A legal move together with the metadata the heuristics need.

    Moves are produced by Position.legal_moves() for one node and discarded
    once the search backtracks past it. `notation` (UCI text, e.g. "e2e4",
    "e7e8q") is the equality key shared by the killer, countermove and PV
    tables, so two Move records from different nodes compare equal when
    they describe the same from/to/promotion.

    Attributes:
        side:          Colour making the move.
        piece:         Moving piece type.
        from_square:   Origin square (python-chess index, a1 = 0).
        to_square:     Destination square.
        captured:      Captured piece type, PAWN for en passant, else None.
        promotion:     Promotion piece type or None.
        is_castle:     True for castling moves.
        is_en_passant: True for en passant captures.
        notation:      Canonical UCI text.
        raw:           The wrapped chess.Move (not part of equality).
    """

    side: chess.Color
    piece: chess.PieceType
    from_square: chess.Square
    to_square: chess.Square
    captured: chess.PieceType | None
    promotion: chess.PieceType | None
    is_castle: bool
    is_en_passant: bool
    notation: str
    raw: chess.Move = field(compare=False, repr=False)

    @classmethod
    def from_board(cls, board: chess.Board, move: chess.Move) -> "Move":
        """Describe a legal `move` in the context of `board` (before it is played)."""
        en_passant = board.is_en_passant(move)
        captured = chess.PAWN if en_passant else board.piece_type_at(move.to_square)
        return cls(
            side=board.turn,
            piece=board.piece_type_at(move.from_square),
            from_square=move.from_square,
            to_square=move.to_square,
            captured=captured,
            promotion=move.promotion,
            is_castle=board.is_castling(move),
            is_en_passant=en_passant,
            notation=move.uci(),
            raw=move,
        )

    @property
    def is_quiet(self) -> bool:
        return self.captured is None

    @property
    def is_promotion(self) -> bool:
        return self.promotion is not None

    def __str__(self) -> str:
        return self.notation


def _parse_fen(fen: str) -> chess.Board:
    try:
        board = chess.Board(fen)
    except ValueError as exc:
        raise PositionParseError(f"invalid FEN {fen!r}: {exc}") from exc
    if not board.is_valid():
        raise PositionParseError(f"illegal position {fen!r} (status {board.status()!r})")
    return board


class Position:
    """
    Mutable game position backed by a python-chess board.

    The position is a single shared resource during a search: every
    apply_move() must be paired with undo_last_move() before control returns
    to the caller that applied it. Prefer the applied() / null_move() guards,
    which enforce the pairing on every exit path.
    """

    def __init__(self, fen: str = STARTING_FEN) -> None:
        self._board = _parse_fen(fen)

    @classmethod
    def from_board(cls, board: chess.Board) -> "Position":
        """Wrap a copy of an existing python-chess board (history included)."""
        if not board.is_valid():
            raise PositionParseError(f"illegal position (status {board.status()!r})")
        position = cls.__new__(cls)
        position._board = board.copy(stack=True)
        return position

    @property
    def board(self) -> chess.Board:
        """The underlying board. Read it freely; mutate it only through this class."""
        return self._board

    def copy(self) -> "Position":
        return Position.from_board(self._board)

    # -----------------------------------------------------------------------
    # Move generation
    # -----------------------------------------------------------------------

    def legal_moves(self) -> list[Move]:
        """All legal moves for the side to move, in python-chess generation order."""
        board = self._board
        return [Move.from_board(board, move) for move in board.generate_legal_moves()]

    def has_legal_moves(self) -> bool:
        return any(True for _ in self._board.generate_legal_moves())

    def move_from_notation(self, notation: str) -> Move | None:
        """
        Resolve UCI text to a legal Move in this position.

        Returns None when the text is malformed or the move is not legal here,
        which is how the cache detects fingerprint collisions.
        """
        try:
            move = chess.Move.from_uci(notation)
        except ValueError:
            return None
        if not self._board.is_legal(move):
            return None
        return Move.from_board(self._board, move)

    def san(self, move: Move) -> str:
        """Standard algebraic notation for a legal move (display only)."""
        return self._board.san(move.raw)

    # -----------------------------------------------------------------------
    # Apply / undo
    # -----------------------------------------------------------------------

    def apply_move(self, move: Move) -> None:
        self._board.push(move.raw)

    def undo_last_move(self) -> chess.Move:
        return self._board.pop()

    @contextmanager
    def applied(self, move: Move) -> Iterator["Position"]:
        """Apply `move` for the duration of the with-block, then undo it."""
        self.apply_move(move)
        try:
            yield self
        finally:
            self.undo_last_move()

    @contextmanager
    def null_move(self) -> Iterator["Position"]:
        """
        Pass the turn without moving a piece for the duration of the with-block.

        python-chess records the null move on its move stack, so popping it
        restores the side to move, castling rights and en passant square
        exactly. Callers must not use this while in check.
        """
        self._board.push(chess.Move.null())
        try:
            yield self
        finally:
            self._board.pop()

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def side_to_move(self) -> chess.Color:
        return self._board.turn

    def in_check(self) -> bool:
        return self._board.is_check()

    def pieces(self) -> Iterable[tuple[chess.Square, chess.Piece]]:
        """(square, piece) pairs for every occupied square."""
        return self._board.piece_map().items()

    def castling_rights(self) -> str:
        """The FEN castling field: some of "KQkq", or "-" when none remain."""
        return self._board.castling_xfen()

    # -----------------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------------

    def serialize(self) -> str:
        """FEN: placement, side to move, castling rights, en passant, counters."""
        return self._board.fen()

    def load(self, fen: str) -> None:
        """Replace the current position (and its move history) with `fen`."""
        self._board = _parse_fen(fen)

    def load_from_move_history(self, moves: Iterable[str], start: str = STARTING_FEN) -> None:
        """
        Rebuild the position by replaying `moves` from `start`.

        Each move may be given in UCI ("g1f3") or SAN ("Nf3"). The current
        position is left untouched if any move fails to parse or is illegal.

        Raises:
            PositionParseError: on an invalid start FEN or an unplayable move.
        """
        board = _parse_fen(start)
        for ply, text in enumerate(moves):
            try:
                board.push_uci(text)
            except ValueError:
                try:
                    board.push_san(text)
                except ValueError as exc:
                    raise PositionParseError(
                        f"move {ply + 1} ({text!r}) cannot be played from {board.fen()!r}"
                    ) from exc
        self._board = board

    def ascii_render(self) -> str:
        return str(self._board)

    def __repr__(self) -> str:
        return f"Position({self.serialize()!r})"
