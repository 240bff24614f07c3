"""
Tapered PeSTO evaluation: material plus piece-square tables, blended by phase.

The search asks the evaluator for a score whenever it reaches the horizon.
Each occupied square contributes a middlegame and an endgame value (material
plus positional bonus) to its owner's accumulators, and its piece kind adds
a phase weight to the running game-phase counter.

Tapered evaluation blends the two accumulators:
- Middlegame (MG): king safety, piece activity, pawn structure
- Endgame (EG): king centralization, passed pawns, rook activity

A fresh position is fully middlegame (phase=24); bare kings and pawns are
fully endgame (phase=0). Extra promoted pieces can push the raw counter above
24, so it is clamped.

The result is relative to the requested perspective side: positive means
that side is ahead. The search always asks for the side to move, which is
the negamax convention.
"""

import chess

from engine.constants import EG_PIECE_VALUES, MAX_PHASE, MG_PIECE_VALUES, PHASE_WEIGHTS, PST
from engine.position import Position


def game_phase(position: Position) -> int:
    """Clamped phase counter: MAX_PHASE for a full middlegame, 0 for a bare endgame."""
    phase = sum(PHASE_WEIGHTS[piece.piece_type] for _, piece in position.pieces())
    return min(phase, MAX_PHASE)


def evaluate(position: Position, perspective: chess.Color) -> int:
    """
    Tapered centipawn evaluation from `perspective`'s point of view.

    The square indexing convention for PST lookup:
        - White piece on square sq: use index sq ^ 56 (flip rank, since PST
          index 0 = a8 visually but python-chess a1=0 is at the bottom)
        - Black piece on square sq: use index sq directly (already mirrored)

    Args:
        position:    The position to score. Not modified.
        perspective: chess.WHITE or chess.BLACK.

    Returns:
        Centipawn score; positive favours `perspective`. Pure function of
        the piece placement and the perspective.

    Example:
        >>> from engine.position import Position
        >>> evaluate(Position(), chess.WHITE)  # symmetric start
        0
    """
    mg = [0, 0]  # indexed by colour: mg[chess.WHITE], mg[chess.BLACK]
    eg = [0, 0]
    phase = 0

    for sq, piece in position.pieces():
        pt = piece.piece_type
        mg_table, eg_table = PST[pt]
        idx = sq ^ 56 if piece.color == chess.WHITE else sq

        mg[piece.color] += MG_PIECE_VALUES[pt] + mg_table[idx]
        eg[piece.color] += EG_PIECE_VALUES[pt] + eg_table[idx]
        phase += PHASE_WEIGHTS[pt]

    # Clamp: a second queen would otherwise push the blend past pure middlegame.
    mg_phase = min(phase, MAX_PHASE)
    eg_phase = MAX_PHASE - mg_phase

    opponent = not perspective
    mg_score = mg[perspective] - mg[opponent]
    eg_score = eg[perspective] - eg[opponent]

    # Integer arithmetic throughout (no floats).
    return (mg_score * mg_phase + eg_score * eg_phase) // MAX_PHASE
