"""
Move ordering: heuristic tables, the principal-variation table, and the orderer.

Alpha-beta prunes best when the best move is searched first. The orderer
ranks every legal move at a node using, in priority order:

    1. the PV move from the previous iteration      (+PV_MOVE_BONUS)
    2. quiet moves: first/second killer at this ply (+9000 / +8000)
                    countermove to the previous move (+9000, additive)
                    history score for (side, piece, destination)
    3. captures: MVV_LVA[attacker][victim] only

All tables belong to one search session and survive from one iterative
deepening iteration to the next; that carry-over is what makes the shallow
iterations pay for themselves.
"""

from operator import itemgetter

from engine.constants import (
    COUNTERMOVE_BONUS,
    FIRST_KILLER_BONUS,
    MAX_PLY,
    MVV_LVA,
    PV_MOVE_BONUS,
    SECOND_KILLER_BONUS,
)
from engine.position import Move


class HeuristicTables:
    """
    Killer, history and countermove tables for one search session.

    Attributes:
        killers:      killers[ply] = [slot0, slot1]; quiet moves that caused
                      a beta cutoff at that ply. Newest goes to slot 0.
        history:      (side, piece, to_square) -> accumulated depth bonus for
                      quiet moves that raised alpha.
        countermoves: previous move's notation -> quiet move that refuted it.
    """

    def __init__(self, max_ply: int = MAX_PLY) -> None:
        self.killers: list[list[Move | None]] = [[None, None] for _ in range(max_ply)]
        self.history: dict[tuple[bool, int, int], int] = {}
        self.countermoves: dict[str, Move] = {}

    def store_killer(self, move: Move, ply: int) -> None:
        slots = self.killers[ply]
        slots[1] = slots[0]
        slots[0] = move

    def store_countermove(self, previous: Move | None, move: Move) -> None:
        if previous is not None:
            self.countermoves[previous.notation] = move

    def record_cutoff(self, move: Move, ply: int, previous: Move | None) -> None:
        """Bookkeeping for a quiet move that failed high."""
        self.store_killer(move, ply)
        self.store_countermove(previous, move)

    def bump_history(self, move: Move, depth: int) -> None:
        key = (move.side, move.piece, move.to_square)
        self.history[key] = self.history.get(key, 0) + depth

    def history_score(self, move: Move) -> int:
        return self.history.get((move.side, move.piece, move.to_square), 0)

    def killer_slot(self, move: Move, ply: int) -> int | None:
        """0 or 1 if `move` is a killer at `ply`, else None."""
        for slot, killer in enumerate(self.killers[ply]):
            if killer is not None and killer.notation == move.notation:
                return slot
        return None

    def is_countermove(self, move: Move, previous: Move | None) -> bool:
        if previous is None:
            return False
        counter = self.countermoves.get(previous.notation)
        return counter is not None and counter.notation == move.notation


class PVTable:
    """
    Triangular principal-variation table.

    moves[ply][ply:length[ply]] is the best line found from the node at `ply`
    during the current iteration. Row 0 is the root line. begin_iteration()
    copies it aside as `previous`, the line the next iteration follows first,
    because the root's start_node() truncates row 0 before any move is ordered.
    """

    def __init__(self, max_ply: int = MAX_PLY) -> None:
        self.moves: list[list[Move | None]] = [[None] * max_ply for _ in range(max_ply)]
        self.length: list[int] = [0] * max_ply
        self.previous: list[Move] = []
        # follow: still walking down the previous iteration's line.
        # scoring: the PV move at this node has not been given its bonus yet.
        self.follow = False
        self.scoring = False

    def begin_iteration(self) -> None:
        """Snapshot the root line and start following it."""
        self.previous = self.line()
        self.follow = True
        self.scoring = False

    def start_node(self, ply: int) -> None:
        """Truncate the line at `ply`; called on entry to every node."""
        self.length[ply] = ply

    def update(self, ply: int, move: Move) -> None:
        """`move` raised alpha at `ply`: it heads the line, followed by the child's line."""
        row = self.moves[ply]
        row[ply] = move
        child = ply + 1
        if child < len(self.length):
            child_row = self.moves[child]
            for i in range(child, self.length[child]):
                row[i] = child_row[i]
            self.length[ply] = max(self.length[child], child)
        else:
            self.length[ply] = child

    def set_single(self, ply: int, move: Move) -> None:
        """Line of exactly one move at `ply` (used for cache hits)."""
        self.moves[ply][ply] = move
        self.length[ply] = ply + 1

    def move_at(self, ply: int) -> Move | None:
        """The previous iteration's move at `ply`, if its line is that long."""
        if ply < len(self.previous):
            return self.previous[ply]
        return None

    def enable_scoring(self, moves: list[Move], ply: int) -> None:
        """
        Keep following the root line only if its move at `ply` is legal here.

        Must be called before ordering when `follow` is set.
        """
        self.follow = False
        pv_move = self.move_at(ply)
        if pv_move is None:
            return
        for move in moves:
            if move.notation == pv_move.notation:
                self.scoring = True
                self.follow = True
                return

    def line(self) -> list[Move]:
        return [m for m in self.moves[0][: self.length[0]] if m is not None]

    def best_move(self) -> Move | None:
        return self.moves[0][0] if self.length[0] > 0 else None


class MoveOrderer:
    """Scores and sorts moves using the session's heuristic tables and PV table."""

    def __init__(self, tables: HeuristicTables, pv: PVTable) -> None:
        self.tables = tables
        self.pv = pv

    def score(self, move: Move, ply: int, previous: Move | None = None) -> int:
        """
        Priority of `move` at `ply`; `previous` is the move that led to this node.

        The PV bonus is handed out at most once per ordering pass: the first
        match switches PV scoring off.
        """
        if self.pv.scoring:
            pv_move = self.pv.move_at(ply)
            if pv_move is not None and pv_move.notation == move.notation:
                self.pv.scoring = False
                return PV_MOVE_BONUS

        if move.is_quiet:
            tables = self.tables
            priority = 0
            slot = tables.killer_slot(move, ply)
            if slot == 0:
                priority += FIRST_KILLER_BONUS
            elif slot == 1:
                priority += SECOND_KILLER_BONUS
            if tables.is_countermove(move, previous):
                priority += COUNTERMOVE_BONUS
            return priority + tables.history_score(move)

        return MVV_LVA[move.piece][move.captured]

    def order(self, moves: list[Move], ply: int, previous: Move | None = None) -> list[Move]:
        """
        Moves sorted by descending priority.

        Scores are taken in generation order and the sort is stable, so equal
        priorities keep the order python-chess generated them in.
        """
        scored = [(self.score(move, ply, previous), move) for move in moves]
        scored.sort(key=itemgetter(0), reverse=True)
        return [move for _, move in scored]
