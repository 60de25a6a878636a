"""
Driver contracts for the chess robot.

The arm, gripper, motion planner and homing switch are provided by the
robot platform. Every driver signals failure by raising.
"""

from typing import Protocol
from dataclasses import dataclass


@dataclass(frozen=True)
class Pose:
    """
    A target for the gripper: position plus orientation vector.
    """
    x: float
    y: float
    z: float
    ox: float = 0.0
    oy: float = 0.0
    oz: float = -1.0     # Pointing straight down
    theta: float = 0.0   # Degrees around the orientation vector


class ManipulatorDriver(Protocol):
    """The arm itself, as far as the gripper fingers are concerned."""

    def set_gripper_opening(self, width: float) -> None:
        ...

    def query_gripper_opening(self) -> float:
        ...


class GripperDriver(Protocol):
    """Open/grab control of the gripper."""

    def open(self) -> None:
        ...

    def grasp(self) -> bool:
        """Close on a piece. Returns True if the gripper thinks it holds one."""
        ...


class MotionService(Protocol):
    """Plans and executes a collision-free motion to a pose."""

    def move_to(self, pose: Pose, reference_frame: str = "world") -> None:
        ...


class HomingSwitch(Protocol):
    """Multi-position switch that sends the arm to a stored pose."""

    def set_staging_position(self, slot: int) -> None:
        ...
