"""
Error types for the chess robot.

Every failure raised by the perception, motion and game layers derives from
ChessRobotError so the orchestrator and the CLI can report it uniformly.
"""


class ChessRobotError(Exception):
    """Base class for all chess robot errors."""


class ConfigError(ChessRobotError):
    """A required collaborator or setting is missing."""


class PerceptionError(ChessRobotError):
    """A requested square could not be found in the latest snapshot."""


class GraspError(ChessRobotError):
    """The gripper never verified a grasp before reaching the height floor."""


class MotionError(ChessRobotError):
    """A motion, gripper or homing driver call failed."""


class UnsupportedMoveError(ChessRobotError):
    """The move needs something the arm can't do (castling, en passant...)."""


class GameOverError(ChessRobotError):
    """The stored position has no legal moves left."""


class EngineError(ChessRobotError):
    """The chess engine failed or returned no move."""


class PersistenceError(ChessRobotError):
    """The stored position exists but can't be read, parsed or written."""


class CommandError(ChessRobotError):
    """A high-level command was malformed or unrecognized."""
