"""
Chess AI engine package.

This package implements the decision-making core of a classical chess
engine: iterative-deepening negamax with fail-hard alpha-beta pruning,
null-move pruning, late move reduction, principal-variation search, and a
replayable position cache.

Modules:
    constants — Scores, PeSTO tables, MVV-LVA, search parameters
    errors    — PositionParseError, SearchConfigError, CacheFormatError
    position  — Position Oracle over python-chess, Move records
    evaluate  — Tapered static evaluation (material + piece-square tables)
    zobrist   — 64-bit position fingerprints
    cache     — Fingerprint-keyed position cache and its file format
    ordering  — Killer/history/countermove tables, PV table, move orderer
    search    — Negamax search and the iterative deepening driver
"""

from engine.cache import CacheEntry, PositionCache, SearchMode
from engine.errors import CacheFormatError, EngineError, PositionParseError, SearchConfigError
from engine.position import STARTING_FEN, Move, Position
from engine.search import SearchOptions, SearchResult, Searcher, get_best_move

__all__ = [
    "CacheEntry",
    "CacheFormatError",
    "EngineError",
    "Move",
    "Position",
    "PositionCache",
    "PositionParseError",
    "STARTING_FEN",
    "SearchConfigError",
    "SearchMode",
    "SearchOptions",
    "SearchResult",
    "Searcher",
    "get_best_move",
]
