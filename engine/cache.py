"""
Position cache: replayed results of earlier deep searches.

This is not a transposition table. Nothing is written and read back within
one search. Instead, a "record" run searches a position and stores the root
result (best move and score) under the position's fingerprint. Later
"evaluate" runs consult the cache at every node and, on a hit, take the
stored result as exact regardless of the depth it was recorded at.

On disk the cache is a single JSON document:

    {
      "magic": "chess-ai-cache",
      "version": 1,
      "checksum": "<sha256 hex of the canonical entries JSON>",
      "entries": {
        "<decimal fingerprint>": {
          "move": "g1f3", "side": "w", "piece": "n",
          "captured": false, "destination": "f3", "evaluation": 35
        }
      }
    }

The canonical entries JSON is json.dumps(entries, sort_keys=True,
separators=(",", ":")). Entries are validated with pydantic on load.
"""

import enum
import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterator

import chess
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from engine.constants import CACHE_MAGIC, CACHE_VERSION
from engine.errors import CacheFormatError
from engine.position import Move

_log = logging.getLogger(__name__)

_MAX_FINGERPRINT = (1 << 64) - 1


class SearchMode(enum.Enum):
    """How the search treats the position cache."""

    EVALUATE = "evaluate"  # trust cached results
    RECORD = "record"      # ignore the cache and always search


class CacheEntry(BaseModel):
    """
    Best move and score recorded for one fingerprint.

    Carries just enough of the move (side, piece kind, capture flag,
    destination) for the search to update its ordering heuristics on a hit
    without regenerating moves.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    move: str
    side: str
    piece: str
    captured: bool
    destination: str
    evaluation: int

    @field_validator("move")
    @classmethod
    def _check_move(cls, v: str) -> str:
        try:
            chess.Move.from_uci(v)
        except ValueError as exc:
            raise ValueError(f"not a UCI move: {v!r}") from exc
        return v

    @field_validator("side")
    @classmethod
    def _check_side(cls, v: str) -> str:
        if v not in ("w", "b"):
            raise ValueError(f"side must be 'w' or 'b', got {v!r}")
        return v

    @field_validator("piece")
    @classmethod
    def _check_piece(cls, v: str) -> str:
        if v not in ("p", "n", "b", "r", "q", "k"):
            raise ValueError(f"unknown piece letter {v!r}")
        return v

    @field_validator("destination")
    @classmethod
    def _check_destination(cls, v: str) -> str:
        if v not in chess.SQUARE_NAMES:
            raise ValueError(f"unknown square {v!r}")
        return v

    @classmethod
    def from_move(cls, move: Move, evaluation: int) -> "CacheEntry":
        return cls(
            move=move.notation,
            side="w" if move.side == chess.WHITE else "b",
            piece=chess.piece_symbol(move.piece),
            captured=not move.is_quiet,
            destination=chess.square_name(move.to_square),
            evaluation=evaluation,
        )


def _checksum(entries: dict) -> str:
    canonical = json.dumps(entries, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class PositionCache:
    """Fingerprint → CacheEntry mapping. No eviction; entries live forever."""

    def __init__(self, entries: dict[int, CacheEntry] | None = None) -> None:
        self._entries: dict[int, CacheEntry] = dict(entries or {})

    def lookup(self, fingerprint: int) -> CacheEntry | None:
        return self._entries.get(fingerprint)

    def record(self, fingerprint: int, entry: CacheEntry) -> None:
        """Store (or overwrite) the result for `fingerprint`."""
        if not 0 <= fingerprint <= _MAX_FINGERPRINT:
            raise ValueError(f"fingerprint out of 64-bit range: {fingerprint}")
        self._entries[fingerprint] = entry

    def items(self) -> Iterator[tuple[int, CacheEntry]]:
        return iter(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "PositionCache":
        """
        Read a cache file written by save().

        A missing file yields an empty cache (nothing has been recorded yet).

        Raises:
            CacheFormatError: unreadable JSON, wrong magic, unsupported
                version, checksum mismatch or an invalid entry.
        """
        path = Path(path)
        if not path.exists():
            _log.info("No position cache at %s; starting empty", path)
            return cls()

        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CacheFormatError(f"cannot read cache {path}: {exc}") from exc

        if not isinstance(document, dict) or document.get("magic") != CACHE_MAGIC:
            raise CacheFormatError(f"{path} is not a position cache file")
        if document.get("version") != CACHE_VERSION:
            raise CacheFormatError(
                f"{path}: unsupported cache version {document.get('version')!r} "
                f"(expected {CACHE_VERSION})"
            )

        raw_entries = document.get("entries")
        if not isinstance(raw_entries, dict):
            raise CacheFormatError(f"{path}: 'entries' must be an object")
        if document.get("checksum") != _checksum(raw_entries):
            raise CacheFormatError(f"{path}: checksum mismatch, file is corrupt")

        entries: dict[int, CacheEntry] = {}
        for key, raw in raw_entries.items():
            try:
                fingerprint = int(key)
            except ValueError as exc:
                raise CacheFormatError(f"{path}: bad fingerprint key {key!r}") from exc
            if not 0 <= fingerprint <= _MAX_FINGERPRINT:
                raise CacheFormatError(f"{path}: fingerprint out of range: {key}")
            try:
                entries[fingerprint] = CacheEntry.model_validate(raw)
            except ValidationError as exc:
                raise CacheFormatError(f"{path}: invalid entry {key}: {exc}") from exc

        _log.info("Loaded %d cached positions from %s", len(entries), path)
        return cls(entries)

    def save(self, path: str | Path) -> None:
        """Write the cache atomically (temp file in the same directory, then rename)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        entries = {
            str(fingerprint): entry.model_dump()
            for fingerprint, entry in sorted(self._entries.items())
        }
        document = {
            "magic": CACHE_MAGIC,
            "version": CACHE_VERSION,
            "checksum": _checksum(entries),
            "entries": entries,
        }

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=1, sort_keys=True)
            os.replace(tmp_name, path)
        except BaseException:
            os.unlink(tmp_name)
            raise
        _log.info("Saved %d cached positions to %s", len(entries), path)
