"""
HTTP surface for the search core.

POST /api/move takes {fen, depth}, searches the position and answers with
the chosen move (UCI and SAN), the FEN after playing it, the root score,
the node count and the principal variation.

Notes:
- The handler is a plain def: FastAPI runs it in its thread pool, so a
  long search does not block the event loop.
- Nothing is kept between requests except the position cache. Every
  request builds its own Position and Searcher.
- The cache is read from CACHE_PATH once at import and used read-only
  (EVALUATE mode). Recording new entries is done with the command line.

Run with:
    uvicorn web.app:app
"""

import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, field_validator

from engine.cache import PositionCache, SearchMode
from engine.constants import CACHE_PATH, DEFAULT_DEPTH, MAX_HTTP_DEPTH
from engine.errors import CacheFormatError, PositionParseError
from engine.position import Position
from engine.search import Searcher

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

app = FastAPI(title="Chess AI", version="5.0.0")


def _load_cache() -> PositionCache:
    try:
        return PositionCache.load(CACHE_PATH)
    except CacheFormatError:
        _log.exception("Ignoring unreadable position cache at %s", CACHE_PATH)
        return PositionCache()


app.state.cache = _load_cache()


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class MoveRequest(BaseModel):
    """
    Client request to the engine.

    Fields:
        fen:   Full FEN string representing the current board position.
        depth: Search depth in plies (clamped to [1, MAX_HTTP_DEPTH] to keep
               a single request from monopolising a worker).
    """

    fen: str
    depth: int = DEFAULT_DEPTH

    @field_validator("depth")
    @classmethod
    def clamp_depth(cls, v: int) -> int:
        """Clamp depth to a safe operating range."""
        return max(1, min(v, MAX_HTTP_DEPTH))


class MoveResponse(BaseModel):
    """
    Engine response after computing the best move.

    Fields:
        move:  Best move in UCI notation (e.g. "e2e4", "e7e8q").
        san:   The same move in standard algebraic notation.
        fen:   Board FEN after the engine's move is applied.
        score: Evaluation in centipawns from the mover's perspective.
        depth: Search depth of the final iteration.
        nodes: Nodes visited over all iterations.
        pv:    Principal variation in UCI notation.
    """

    move: str
    san: str
    fen: str
    score: int
    depth: int
    nodes: int
    pv: list[str]


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------


@app.post("/api/move", response_model=MoveResponse)
def api_move(request: MoveRequest) -> MoveResponse:
    """
    Compute the engine's best move for the given position.

    Raises:
        HTTPException 400: Malformed FEN or game already over.
        HTTPException 500: Engine failure.
    """
    try:
        position = Position(request.fen)
    except PositionParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if position.board.is_game_over():
        raise HTTPException(
            status_code=400,
            detail=f"Game is already over: {position.board.result()}",
        )

    try:
        result = Searcher(position, cache=app.state.cache, mode=SearchMode.EVALUATE).search(
            request.depth
        )
    except Exception as exc:
        _log.exception("Engine search failed for FEN=%s", request.fen)
        raise HTTPException(status_code=500, detail=f"Engine error: {exc}") from exc

    if result.move is None:
        raise HTTPException(status_code=500, detail="Engine returned no move")

    _log.info(
        "Move=%s score=%d depth=%d nodes=%d fen=%s",
        result.move.notation,
        result.score,
        result.depth,
        result.nodes,
        request.fen[:40],
    )

    san = position.san(result.move)
    position.apply_move(result.move)
    return MoveResponse(
        move=result.move.notation,
        san=san,
        fen=position.serialize(),
        score=result.score,
        depth=result.depth,
        nodes=result.nodes,
        pv=[m.notation for m in result.pv],
    )
