"""Shared pytest fixtures for the chess robot tests."""

from typing import Dict, Optional

import chess
import numpy as np
import pytest

from .arm_control.arm_controller import ArmController
from .arm_control.config import ArmConfig
from .arm_control.move_executor import MoveExecutor
from .arm_control.simulated import SimulatedRobot
from .vision.board_scanner import BoardScanner
from .vision.board_state import (
    ALL_SQUARES, BoardSnapshot, Occupancy, SquareObservation,
)
from .vision.camera import SimulatedCamera


class FastArmConfig(ArmConfig):
    """Arm config without settle delays."""
    GRASP_SETTLE_DELAY = 0.0
    HOME_SETTLE_DELAY = 0.0


class FixedEngine:
    """Engine stub that plays a fixed list of moves."""

    def __init__(self, *moves: str):
        self.moves = list(moves)
        self.positions = []
        self.budgets = []
        self.closed = False

    def submit_position(self, board: chess.Board):
        self.positions.append(board.fen())

    def best_move(self, time_budget: float) -> chess.Move:
        self.budgets.append(time_budget)
        index = min(len(self.budgets) - 1, len(self.moves) - 1)
        return chess.Move.from_uci(self.moves[index])

    def close(self):
        self.closed = True


def make_snapshot(overrides: Optional[Dict[str, SquareObservation]] = None) -> BoardSnapshot:
    """Build a snapshot of an empty board, with some squares replaced."""
    overrides = overrides or {}
    squares = []
    for square in ALL_SQUARES:
        obs = overrides.get(square)
        if obs is None:
            obs = SquareObservation(
                square=square,
                occupancy=Occupancy.EMPTY,
                region=np.zeros((1, 3)),
                center=(0.0, 0.0, 0.0),
                peak=(0.0, 0.0, 0.0),
            )
        squares.append(obs)
    return BoardSnapshot(tuple(squares))


def scan_board(board: chess.Board) -> BoardSnapshot:
    """Scan a simulated capture of a position."""
    capture = SimulatedCamera(lambda: board).capture()
    return BoardScanner().scan(capture.image, capture.cloud, capture.geometry)


@pytest.fixture
def arm_config() -> ArmConfig:
    return FastArmConfig()


@pytest.fixture
def sim() -> SimulatedRobot:
    return SimulatedRobot()


@pytest.fixture
def arm(sim, arm_config) -> ArmController:
    return ArmController(sim.manipulator, sim.gripper, sim.motion, sim.homing, arm_config)


@pytest.fixture
def executor(arm) -> MoveExecutor:
    return MoveExecutor(arm)


@pytest.fixture
def start_snapshot() -> BoardSnapshot:
    return scan_board(chess.Board())
