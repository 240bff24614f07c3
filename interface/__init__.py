"""
Interface package: ways to drive the chess engine from outside.

Modules:
    cli — Command-line front end. Prompts for a FEN, prints the board and
          the chosen move, and (with --debug --train) records results into
          the position cache.
          Can be run as: python -m interface.cli
"""
