"""
Search entry point: iterative-deepening negamax with fail-hard alpha-beta,
null-move pruning, late move reduction and principal-variation search.

One Searcher instance is one search session. All mutable search state lives
on it rather than in module globals:

    - ply / prev_move: where we are in the tree (ply == recursion depth)
    - tables: killer, history and countermove heuristics
    - pv: the triangular principal-variation table
    - nodes: diagnostic node counter

Node procedure (negamax):

    1. Leaf (depth 0): static evaluation for the side to move. A leaf in
       check with no legal moves is scored as mate instead; moves are only
       generated at a leaf when it is in check, so a stalemated leaf keeps
       its static score.
    2. Cache: in EVALUATE mode a cached result for this fingerprint ends the
       node. A cached score >= beta fails high; anything else becomes this
       node's PV and return value.
    3. Null move: give the opponent a free move at depth - 3 with a null
       window; if we are still >= beta, prune. Unsound in zugzwang
       positions; accepted for average-case speed.
    4. Generate and order moves (PV move, killers, countermove, history,
       MVV-LVA).
    5. No legal moves: checkmate (-INFINITY_SCORE + ply) or stalemate (0).
    6. Move loop: the first move gets a full window. Later quiet moves are
       probed at reduced depth (LMR); anything that beats alpha is verified
       with a null window at full depth and re-searched with the full
       window only if it lands strictly inside (alpha, beta) (PVS).
       A reduced probe that fails low is final, so LMR can hide a late
       quiet move that a full-depth search would prefer: on quiet
       positions the root move and score may differ slightly from an
       unreduced search.
    7. Every applied move is undone by a scoped guard before the loop body
       continues, on every exit path.
    8. score >= beta: record killer/countermove for quiet moves, return beta.
       score > alpha: history bump for quiet moves, update the PV.
    9. Return alpha.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from engine.cache import PositionCache, SearchMode
from engine.constants import (
    DEFAULT_DEPTH,
    DRAW_SCORE,
    FULL_DEPTH_MOVES,
    INFINITY_SCORE,
    LMR_REDUCTION,
    MAX_PLY,
    NULL_MOVE_MIN_DEPTH,
    NULL_MOVE_REDUCTION,
    REDUCTION_LIMIT,
)
from engine.errors import SearchConfigError
from engine.evaluate import evaluate
from engine.ordering import HeuristicTables, MoveOrderer, PVTable
from engine.position import Move, Position
from engine.zobrist import fingerprint

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchOptions:
    """Switches for the forward-pruning techniques (all on by default)."""

    null_move: bool = True
    late_move_reduction: bool = True
    principal_variation_search: bool = True


@dataclass
class IterationInfo:
    """Diagnostics for one completed iterative-deepening iteration."""

    depth: int
    score: int
    nodes: int
    pv: list[Move]


@dataclass
class SearchResult:
    """
    Outcome of Searcher.search().

    Attributes:
        move:       Root move of the principal variation, or None when the
                    side to move has no legal moves (mate or stalemate).
        score:      Root score from the side-to-move's perspective.
        depth:      Depth of the final iteration.
        nodes:      Nodes visited over all iterations.
        pv:         Principal variation of the final iteration.
        iterations: Per-depth diagnostics, shallowest first.
    """

    move: Move | None
    score: int
    depth: int
    nodes: int
    pv: list[Move]
    iterations: list[IterationInfo] = field(default_factory=list)


def validate_depth(depth: int) -> int:
    """Return `depth` if it is a usable search depth, else raise SearchConfigError."""
    if isinstance(depth, bool) or not isinstance(depth, int):
        raise SearchConfigError(f"search depth must be an integer, got {depth!r}")
    if depth < 1:
        raise SearchConfigError(f"search depth must be at least 1, got {depth}")
    if depth > MAX_PLY - 1:
        raise SearchConfigError(f"search depth must be at most {MAX_PLY - 1}, got {depth}")
    return depth


class Searcher:
    """
    One search session over a Position.

    The position is mutated in place during the search and is always back
    in its original state when search() returns (or raises).

    Args:
        position: Position to search. Borrowed, not copied.
        cache:    Optional PositionCache consulted in EVALUATE mode.
        mode:     SearchMode.EVALUATE trusts the cache; SearchMode.RECORD
                  bypasses it so every node is searched afresh.
        options:  Pruning switches (null move, LMR, PVS).
    """

    def __init__(
        self,
        position: Position,
        cache: PositionCache | None = None,
        mode: SearchMode = SearchMode.EVALUATE,
        options: SearchOptions | None = None,
    ) -> None:
        self.position = position
        self.cache = cache
        self.mode = mode
        self.options = options or SearchOptions()
        self._new_session()

    def _new_session(self) -> None:
        self.tables = HeuristicTables()
        self.pv = PVTable()
        self.orderer = MoveOrderer(self.tables, self.pv)
        self.ply = 0
        self.side = self.position.side_to_move()
        self.nodes = 0
        self.prev_move: Move | None = None

    # -----------------------------------------------------------------------
    # Iterative deepening driver
    # -----------------------------------------------------------------------

    def search(self, max_depth: int) -> SearchResult:
        """
        Search depth 1, 2, ..., max_depth and return the final PV.

        Heuristic tables are deliberately not reset between iterations: the
        killers, history and PV found at depth n order the moves at depth
        n + 1. They are reset between calls to search().

        Raises:
            SearchConfigError: if max_depth is not in 1..MAX_PLY-1.
        """
        validate_depth(max_depth)
        self._new_session()

        score = 0
        total_nodes = 0
        iterations: list[IterationInfo] = []

        for current_depth in range(1, max_depth + 1):
            self.pv.begin_iteration()
            self.nodes = 0

            score = self.negamax(current_depth, -INFINITY_SCORE, INFINITY_SCORE)

            total_nodes += self.nodes
            info = IterationInfo(current_depth, score, self.nodes, self.pv.line())
            iterations.append(info)
            _log.debug(
                "depth %d score %d nodes %d pv %s",
                current_depth,
                score,
                self.nodes,
                " ".join(m.notation for m in info.pv) or "(none)",
            )

        return SearchResult(
            move=self.pv.best_move(),
            score=score,
            depth=max_depth,
            nodes=total_nodes,
            pv=self.pv.line(),
            iterations=iterations,
        )

    # -----------------------------------------------------------------------
    # Negamax
    # -----------------------------------------------------------------------

    def negamax(self, depth: int, alpha: int, beta: int) -> int:
        """
        Fail-hard negamax with alpha-beta pruning at the current ply.

        Args:
            depth: Remaining depth in plies. 0 means evaluate.
            alpha: Lower bound of the window (best score we can guarantee).
            beta:  Upper bound of the window (best score the opponent allows).
                   Callers guarantee alpha < beta.

        Returns:
            Score from the side-to-move's perspective. A cutoff returns beta
            itself; a node that never raises alpha returns alpha. Mate and
            stalemate scores may fall outside the window.
        """
        ply = self.ply
        position = self.position
        self.pv.start_node(ply)
        self.nodes += 1

        if depth == 0:
            if position.in_check() and not position.has_legal_moves():
                return -INFINITY_SCORE + ply
            return evaluate(position, position.side_to_move())

        if self.mode is SearchMode.EVALUATE and self.cache is not None:
            cached = self._probe_cache()
            if cached is not None:
                move, score = cached
                if score >= beta:
                    if move.is_quiet:
                        self.tables.record_cutoff(move, ply, self.prev_move)
                    return beta
                if move.is_quiet:
                    self.tables.bump_history(move, depth)
                self.pv.set_single(ply, move)
                return score

        in_check = position.in_check()

        if (
            self.options.null_move
            and depth >= NULL_MOVE_MIN_DEPTH
            and not in_check
            and ply > 0
        ):
            with self._descend(None):
                score = -self.negamax(depth - NULL_MOVE_REDUCTION, -beta, -beta + 1)
            if score >= beta:
                return beta

        moves = position.legal_moves()
        if self.pv.follow:
            self.pv.enable_scoring(moves, ply)
        moves = self.orderer.order(moves, ply, self.prev_move)

        if not moves:
            # Mate scores carry the ply so shorter mates score higher for the
            # winner and longer ones for the loser.
            return -INFINITY_SCORE + ply if in_check else DRAW_SCORE

        for index, move in enumerate(moves):
            with self._descend(move):
                score = self._search_move(move, index, depth, alpha, beta, in_check)

            if score >= beta:
                if move.is_quiet:
                    self.tables.record_cutoff(move, ply, self.prev_move)
                return beta

            if score > alpha:
                if move.is_quiet:
                    self.tables.bump_history(move, depth)
                alpha = score
                self.pv.update(ply, move)

        return alpha

    def _search_move(
        self,
        move: Move,
        index: int,
        depth: int,
        alpha: int,
        beta: int,
        in_check: bool,
    ) -> int:
        """Score the already-applied `move` (the index-th in order) from the parent's view."""
        options = self.options

        if (
            options.late_move_reduction
            and index >= FULL_DEPTH_MOVES
            and depth >= REDUCTION_LIMIT
            and not in_check
            and move.is_quiet
            and not move.is_promotion
        ):
            score = -self.negamax(depth - LMR_REDUCTION, -alpha - 1, -alpha)
            if score <= alpha:
                return score

        if index == 0 or not options.principal_variation_search:
            return -self.negamax(depth - 1, -beta, -alpha)

        score = -self.negamax(depth - 1, -alpha - 1, -alpha)
        if alpha < score < beta:
            score = -self.negamax(depth - 1, -beta, -alpha)
        return score

    @contextmanager
    def _descend(self, move: Move | None) -> Iterator[None]:
        """
        Step one ply down: apply `move` (None = null move), then restore.

        Restores the position, the ply counter and the previous move on
        every exit path, so cutoffs can simply return.
        """
        saved_prev = self.prev_move
        guard = self.position.null_move() if move is None else self.position.applied(move)
        with guard:
            self.prev_move = move
            self.ply += 1
            try:
                yield
            finally:
                self.ply -= 1
                self.prev_move = saved_prev

    def _probe_cache(self) -> tuple[Move, int] | None:
        entry = self.cache.lookup(fingerprint(self.position))
        if entry is None:
            return None
        move = self.position.move_from_notation(entry.move)
        if move is None:
            # Same fingerprint, different position (see engine.zobrist).
            _log.debug("Ignoring cached move %s: not legal in %s", entry.move, self.position)
            return None
        return move, entry.evaluation


def get_best_move(
    position: Position,
    max_depth: int = DEFAULT_DEPTH,
    *,
    cache: PositionCache | None = None,
    mode: SearchMode = SearchMode.EVALUATE,
    options: SearchOptions | None = None,
) -> tuple[Move | None, int, int, int]:
    """
    Return (move, score, depth, nodes) for `position` searched to `max_depth`.

    Convenience wrapper around Searcher for the command line and web app.
    `move` is None when the side to move has no legal moves.
    """
    result = Searcher(position, cache=cache, mode=mode, options=options).search(max_depth)
    return result.move, result.score, result.depth, result.nodes
