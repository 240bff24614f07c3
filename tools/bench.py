#!/usr/bin/env python3
"""
Benchmark: nodes and time per position at a fixed search depth.

Each position is searched twice, once with null-move pruning, LMR and PVS
enabled and once with plain alpha-beta, so the effect of the pruning is
visible as a node-count ratio. The "Same" column flags positions where the
two searches disagree on the best move or score (expected only in zugzwang
or when LMR misjudges a late move).

Usage: python3 tools/bench.py [depth]
"""
import os
import sys
import time

REPO = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO not in sys.path:
    sys.path.insert(0, REPO)

from engine.position import Position
from engine.search import SearchOptions, Searcher

DEFAULT_BENCH_DEPTH = 4

PLAIN = SearchOptions(null_move=False, late_move_reduction=False, principal_variation_search=False)

# Opening, middlegame and endgame positions; keep the set fixed so runs compare.
POSITIONS = [
    ("Start",        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"),
    ("After 1.e4",   "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"),
    ("Mid-open",     "r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4"),
    ("Complex mid",  "r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"),
    ("Queen ending", "6k1/ppp2ppp/8/3p4/3P4/8/PPP2PPP/6K1 w - - 0 1"),
    ("Rook ending",  "8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"),
    ("Back rank",    "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"),
]


def run_position(label: str, fen: str, depth: int, options: SearchOptions | None) -> dict:
    """Search one position and return move, score, nodes and elapsed time."""
    position = Position(fen)
    start = time.monotonic()
    result = Searcher(position, options=options).search(depth)
    elapsed_ms = max(1, int((time.monotonic() - start) * 1000))
    return {
        "label": label,
        "move": result.move.notation if result.move else "(none)",
        "score": result.score,
        "nodes": result.nodes,
        "nps": result.nodes * 1000 // elapsed_ms,
        "time_ms": elapsed_ms,
    }


def main() -> None:
    """Run all benchmark positions and print a summary table."""
    depth = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_BENCH_DEPTH
    print(f"chess-ai benchmark ({sys.executable}), depth {depth}")
    print()
    print(
        f"{'Position':<14} {'Move':<7} {'Score':>6} {'Nodes':>9} "
        f"{'Plain':>9} {'Ratio':>6} {'NPS':>7} {'Time(ms)':>9} {'Same':>5}"
    )
    print("-" * 82)

    total_pruned = total_plain = 0
    for label, fen in POSITIONS:
        r = run_position(label, fen, depth, None)
        plain = run_position(label, fen, depth, PLAIN)
        total_pruned += r["nodes"]
        total_plain += plain["nodes"]
        same = r["move"] == plain["move"] and r["score"] == plain["score"]
        ratio = plain["nodes"] / max(1, r["nodes"])
        print(
            f"{r['label']:<14} {r['move']:<7} {r['score']:>6} {r['nodes']:>9,} "
            f"{plain['nodes']:>9,} {ratio:>6.2f} {r['nps']:>7,} {r['time_ms']:>9,} "
            f"{'yes' if same else 'NO':>5}"
        )

    print("-" * 82)
    print(f"{'TOTAL':<14} {'':<7} {'':>6} {total_pruned:>9,} {total_plain:>9,} "
          f"{total_plain / max(1, total_pruned):>6.2f}")


if __name__ == "__main__":
    main()
