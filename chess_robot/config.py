"""
Top-level configuration for the chess robot.
Where the game is stored and how the engine is started.
"""

import os
from typing import Optional


class RobotConfig:
    """
    Configuration for the orchestrator.
    Change these values based on your setup!
    """

    # ==================== GAME STORAGE ====================
    # Directory holding the persisted position. Falls back to this
    # environment variable, then to the current directory.
    DATA_DIR_ENV = "CHESS_ROBOT_DATA"
    FEN_FILENAME = "fen.txt"

    # ==================== ENGINE ====================
    # UCI engine executable (must be on PATH or an absolute path)
    ENGINE_PATH = "stockfish"

    # Time budget per engine move in seconds
    ENGINE_MOVE_TIME = 0.01

    @classmethod
    def fen_path(cls, data_dir: Optional[str] = None) -> str:
        """
        Get the path of the persisted position file.

        Args:
            data_dir: Directory to use. Uses DATA_DIR_ENV if not specified.

        Returns:
            Path to the FEN file.
        """
        if data_dir is None:
            data_dir = os.environ.get(cls.DATA_DIR_ENV, "")
        return os.path.join(data_dir or os.curdir, cls.FEN_FILENAME)
