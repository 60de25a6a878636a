"""
Logic module for the chess robot.
Handles the stored position, move selection, and the chess engine.
"""

from .engine import ChessEngine, UciEngine
from .game_state import GameStateManager, Move, MoveTag
