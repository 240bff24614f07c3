"""
Error taxonomy for the search core.

Only genuinely exceptional situations raise. Checkmate, stalemate, cache
misses and phase overflow are ordinary search outcomes and never surface
as exceptions.
"""


class EngineError(Exception):
    """Base class for every error raised by the engine package."""


class PositionParseError(EngineError, ValueError):
    """A FEN string or move history could not be turned into a legal position.

    Raised by the Position Oracle. Non-recoverable for the current session:
    no partial result is produced.
    """


class SearchConfigError(EngineError, ValueError):
    """The search was asked to run with an unusable configuration (e.g. depth 0)."""


class CacheFormatError(EngineError):
    """A persisted position cache is unreadable, corrupt or of an unknown version."""
