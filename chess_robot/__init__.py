"""
Chess Robot Project
===================
A robot arm that plays chess on a real board.
Uses a depth camera to see which squares hold white or black pieces, and
picks and places pieces to play the moves chosen by a chess engine.

Piece moves only: castling, en passant and promotion are refused.
"""

__version__ = "1.0.0"
