"""
Chess engine for the chess robot.
Talks UCI to an external engine (Stockfish by default) through python-chess.
"""

import logging
from typing import Optional, Protocol

import chess
import chess.engine

from ..errors import EngineError

logger = logging.getLogger(__name__)


class ChessEngine(Protocol):
    """Anything that can suggest a move for a position."""

    def submit_position(self, board: chess.Board) -> None:
        ...

    def best_move(self, time_budget: float) -> chess.Move:
        ...

    def close(self) -> None:
        ...


class UciEngine:
    """
    A UCI engine running as a child process.

    The process is started on construction and stopped by close().
    """

    def __init__(self, path: str = "stockfish"):
        """
        Start the engine.

        Args:
            path: Engine executable.
        """
        self.path = path
        self.board: Optional[chess.Board] = None
        try:
            self.engine = chess.engine.SimpleEngine.popen_uci(path)
        except (OSError, chess.engine.EngineError) as e:
            raise EngineError(f"Could not start engine {path!r}: {e}") from e
        logger.info("Engine started: %s", self.engine.id.get("name", path))

    def submit_position(self, board: chess.Board):
        self.board = board.copy(stack=False)

    def best_move(self, time_budget: float) -> chess.Move:
        """
        Search the submitted position.

        Args:
            time_budget: Seconds the engine may think.

        Returns:
            The engine's best move.
        """
        if self.board is None:
            raise EngineError("No position submitted to the engine")
        try:
            result = self.engine.play(self.board, chess.engine.Limit(time=time_budget))
        except (chess.engine.EngineError, chess.engine.EngineTerminatedError) as e:
            raise EngineError(f"Engine failed on {self.board.fen()}: {e}") from e
        if result.move is None:
            raise EngineError(f"Engine returned no move for {self.board.fen()}")
        return result.move

    def close(self):
        """Stop the engine process."""
        try:
            self.engine.quit()
        except chess.engine.EngineTerminatedError:
            pass
        logger.info("Engine stopped.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
