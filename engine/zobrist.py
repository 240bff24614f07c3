"""
Position fingerprints (Zobrist-style 64-bit hashes).

A fingerprint is the XOR of independent random keys:
    - one key per (colour, piece type, square) for every occupied square
    - one key per castling right present ("K", "Q", "k", "q")
    - one key for the side to move (white or black)

The keys come from a seeded generator, so fingerprints are stable across
processes and can index a cache file written by an earlier run.

Collision scope: the en passant square and the move counters are NOT part
of the fingerprint. Two positions that agree on placement, castling rights
and side to move hash identically even if one of them allows an en passant
capture. Consumers that need strict uniqueness must compare full FENs.
"""

import random

import chess

from engine.constants import ZOBRIST_SEED
from engine.position import Position

_rng = random.Random(ZOBRIST_SEED)

# PIECE_KEYS[color][piece_type][square]; piece_type row 0 is unused.
PIECE_KEYS: list[list[list[int]]] = [
    [[_rng.getrandbits(64) for _ in chess.SQUARES] for _ in range(7)]
    for _ in chess.COLORS
]

CASTLING_KEYS: dict[str, int] = {flag: _rng.getrandbits(64) for flag in "KQkq"}

# SIDE_KEYS[chess.BLACK], SIDE_KEYS[chess.WHITE]
SIDE_KEYS: tuple[int, int] = (_rng.getrandbits(64), _rng.getrandbits(64))

del _rng


def fingerprint(position: Position) -> int:
    """Return the 64-bit fingerprint of `position` (see module docstring for scope)."""
    key = 0
    for sq, piece in position.pieces():
        key ^= PIECE_KEYS[piece.color][piece.piece_type][sq]

    for flag in position.castling_rights():
        # "-" (no rights) contributes nothing.
        key ^= CASTLING_KEYS.get(flag, 0)

    key ^= SIDE_KEYS[position.side_to_move()]
    return key
