"""
Command-line front end for the search core.

Reads a position (from --fen or a prompt on stdin), prints the board, runs
the iterative-deepening search and prints the chosen move. Diagnostics
(node count, evaluation, principal variation) are printed with --debug.

Training: only when BOTH --debug and --train are given, the search runs in
RECORD mode (cache bypassed) and the root result is stored in the position
cache file, so later runs can replay it.

Usage:
    python -m interface.cli --fen "<FEN>" --depth 4 --debug
    echo "<FEN>" | python -m interface.cli
"""

import argparse
import logging
import sys
from typing import Sequence, TextIO

from engine.cache import CacheEntry, PositionCache, SearchMode
from engine.constants import CACHE_PATH, DEFAULT_DEPTH
from engine.errors import EngineError
from engine.position import STARTING_FEN, Position
from engine.search import Searcher
from engine.zobrist import fingerprint

_log = logging.getLogger(__name__)

EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chess-ai",
        description="Pick the best move for a chess position.",
    )
    parser.add_argument("--fen", help="position to search (prompted for when omitted)")
    parser.add_argument(
        "--depth",
        type=int,
        default=DEFAULT_DEPTH,
        help=f"search depth in plies (default: {DEFAULT_DEPTH})",
    )
    parser.add_argument(
        "--cache",
        default=str(CACHE_PATH),
        help="position cache file (default: %(default)s)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="print node count, evaluation and principal variation",
    )
    parser.add_argument(
        "--train",
        action="store_true",
        help="with --debug: ignore the cache and record this result into it",
    )
    return parser


def _read_fen(stdin: TextIO, stdout: TextIO) -> str:
    stdout.write("Enter FEN value: ")
    stdout.flush()
    line = stdin.readline().strip()
    return line or STARTING_FEN


def run(
    argv: Sequence[str] | None = None,
    stdin: TextIO = sys.stdin,
    stdout: TextIO = sys.stdout,
) -> int:
    """Run the command line; returns the process exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    training = args.debug and args.train
    if args.train and not args.debug:
        _log.warning("--train has no effect without --debug; using the cache read-only")

    try:
        fen = args.fen if args.fen is not None else _read_fen(stdin, stdout)
        position = Position(fen)
        print(position.ascii_render(), file=stdout)

        cache = PositionCache.load(args.cache)
        mode = SearchMode.RECORD if training else SearchMode.EVALUATE
        result = Searcher(position, cache=cache, mode=mode).search(args.depth)
    except EngineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    if result.move is None:
        print("bestmove (none)", file=stdout)
    else:
        print(f"bestmove {result.move.notation} ({position.san(result.move)})", file=stdout)

    if args.debug:
        print(f"nodes {result.nodes}", file=stdout)
        print(f"evaluation {result.score}", file=stdout)
        print(f"pv {' '.join(m.notation for m in result.pv) or '(none)'}", file=stdout)

    if training and result.move is not None:
        cache.record(fingerprint(position), CacheEntry.from_move(result.move, result.score))
        try:
            cache.save(args.cache)
        except OSError as exc:
            print(f"error: cannot write cache {args.cache}: {exc}", file=sys.stderr)
            return 1
        print(f"cached {len(cache)} positions in {args.cache}", file=stdout)

    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
