"""
Web application package for the Chess AI engine.

Provides a FastAPI-based REST API (POST /api/move) for querying the engine
over HTTP.
"""
