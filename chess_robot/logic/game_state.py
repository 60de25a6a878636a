"""
Game state management for the chess robot.
Stores the position, picks the next move and rejects moves the arm can't make.
"""

import os
import logging
from enum import Enum
from typing import Optional
from dataclasses import dataclass

import chess

from ..errors import (
    EngineError, GameOverError, PersistenceError, UnsupportedMoveError,
)
from .engine import ChessEngine

logger = logging.getLogger(__name__)


class MoveTag(Enum):
    """Moves that need more than lifting one piece onto one square."""
    KING_SIDE_CASTLE = "king_side_castle"
    QUEEN_SIDE_CASTLE = "queen_side_castle"
    EN_PASSANT = "en_passant"
    PROMOTION = "promotion"


# The arm moves one piece (plus at most the piece it lands on)
UNSUPPORTED_TAGS = frozenset(MoveTag)


@dataclass(frozen=True)
class Move:
    """
    A move in the game.
    """
    from_square: str                    # e.g. "e2"
    to_square: str                      # e.g. "e4"
    promotion: Optional[str] = None     # Piece letter, e.g. "q"
    tag: Optional[MoveTag] = None

    @property
    def uci(self) -> str:
        return f"{self.from_square}{self.to_square}{self.promotion or ''}"

    @classmethod
    def from_chess(cls, board: chess.Board, move: chess.Move) -> "Move":
        """
        Build a move from a python-chess move in a position.

        Args:
            board: Position the move is played from.
            move: The move.

        Returns:
            The move, tagged if it is special.
        """
        tag = None
        if board.is_kingside_castling(move):
            tag = MoveTag.KING_SIDE_CASTLE
        elif board.is_queenside_castling(move):
            tag = MoveTag.QUEEN_SIDE_CASTLE
        elif board.is_en_passant(move):
            tag = MoveTag.EN_PASSANT
        elif move.promotion is not None:
            tag = MoveTag.PROMOTION

        return cls(
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
            tag=tag,
        )

    def to_chess(self) -> chess.Move:
        return chess.Move.from_uci(self.uci)

    def __str__(self):
        return self.uci


class GameStateManager:
    """
    Keeps the game position on disk and decides what to play next.

    Only the current position is stored (as FEN), never the move history.
    Without an engine the first legal move is played, which is enough for
    testing the arm.
    """

    def __init__(
        self,
        fen_path: str,
        engine: Optional[ChessEngine] = None,
        move_time: float = 0.01
    ):
        """
        Initialize the game state manager.

        Args:
            fen_path: File holding the current position.
            engine: Engine to ask for moves. None plays the first legal move.
            move_time: Seconds the engine may think per move.
        """
        self.fen_path = fen_path
        self.engine = engine
        self.move_time = move_time

    def load(self) -> chess.Board:
        """
        Load the stored position.

        Returns:
            The position, or the starting position if nothing is stored yet.
        """
        try:
            with open(self.fen_path, encoding="utf-8") as f:
                fen = f.read().strip()
        except FileNotFoundError:
            logger.info("No saved game at %s, starting a new one", self.fen_path)
            return chess.Board()
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Error reading fen ({self.fen_path}): {e}") from e

        try:
            board = chess.Board(fen)
        except ValueError as e:
            raise PersistenceError(
                f"Invalid fen from ({self.fen_path}) ({fen!r}): {e}"
            ) from e

        # Parses, but can't come from a real game (no kings, pawns on rank 1...)
        if not board.is_valid():
            raise PersistenceError(
                f"Impossible position in ({self.fen_path}) ({fen!r}): {board.status()!r}"
            )

        logger.info("Loaded position: %s", fen)
        return board

    def save(self, board: chess.Board):
        """Store a position, replacing the previous one."""
        fen = board.fen()
        try:
            directory = os.path.dirname(self.fen_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.fen_path, "w", encoding="utf-8") as f:
                f.write(fen)
        except OSError as e:
            raise PersistenceError(f"Error writing fen ({self.fen_path}): {e}") from e
        logger.info("Saved position: %s", fen)

    def pick_move(self, board: chess.Board) -> Move:
        """
        Choose the next move for a position.

        Args:
            board: Current position.

        Returns:
            A move the arm can perform.
        """
        first = next(iter(board.legal_moves), None)
        if first is None:
            raise GameOverError(f"No valid moves in {board.fen()}")

        if self.engine is None:
            chosen = first
        else:
            self.engine.submit_position(board)
            chosen = self.engine.best_move(self.move_time)
            if chosen is None:
                raise EngineError(f"Engine returned no move for {board.fen()}")
            if chosen not in board.legal_moves:
                raise EngineError(f"Engine suggested illegal move {chosen.uci()}")

        move = Move.from_chess(board, chosen)
        self.check_supported(move)
        logger.info("Picked move %s for %s", move, board.fen())
        return move

    def check_supported(self, move: Move):
        """Raise UnsupportedMoveError if the arm can't perform a move."""
        if move.tag in UNSUPPORTED_TAGS:
            raise UnsupportedMoveError(f"Can't handle {move.tag.value} {move}")

    def apply_move(self, board: chess.Board, move: Move) -> chess.Board:
        """
        Play a move on a copy of a position.

        Call this only after the arm has made the move.

        Args:
            board: Position before the move (left unchanged).
            move: The move that was made.

        Returns:
            Position after the move.
        """
        chess_move = move.to_chess()
        if chess_move not in board.legal_moves:
            raise UnsupportedMoveError(f"Illegal move {move} in {board.fen()}")
        new_board = board.copy(stack=False)
        new_board.push(chess_move)
        return new_board
