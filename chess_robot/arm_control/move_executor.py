"""
Pick and place for the chess robot.

Moving a piece is a small state machine:

    POSITIONING -> DESCENDING -> GRASPING -> VERIFYING -> SUCCEEDED
                       ^                         |
                       +------- RETRYING <-------+---> FAILED

followed by the place phase:

    POSITIONING -> DESCENDING -> RELEASING -> POSITIONING -> DONE

Every retry goes GRASP_HEIGHT_STEP lower, and the loop stops for good at
GRASP_HEIGHT_FLOOR, so it always terminates.
"""

import logging
from enum import Enum
from typing import List, Optional

from ..errors import ChessRobotError, ConfigError, GraspError
from ..vision.board_state import BoardSnapshot
from .arm_controller import ArmController
from .config import ArmConfig
from .coordinate_resolver import DISCARD, CoordinateResolver, Point3D
from .gripper import GraspAttempt

logger = logging.getLogger(__name__)


class ExecutorState(Enum):
    """Where the executor is in a pick and place."""
    IDLE = "idle"
    POSITIONING = "positioning"
    DESCENDING = "descending"
    GRASPING = "grasping"
    VERIFYING = "verifying"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    RELEASING = "releasing"
    DONE = "done"


class MoveExecutor:
    """
    Physically moves pieces from square to square.

    If the destination is occupied, the piece there is first carried to the
    discard area. Only that one level of displacement exists: the discard
    area is assumed to always have room.
    """

    def __init__(
        self,
        arm: ArmController,
        resolver: Optional[CoordinateResolver] = None,
        config: Optional[ArmConfig] = None
    ):
        """
        Initialize the move executor.

        Args:
            arm: Arm controller used for every motion.
            resolver: Square to coordinate resolver.
            config: Arm configuration.
        """
        self.config = config or arm.config
        if self.config.GRASP_HEIGHT_STEP <= 0:
            raise ConfigError("GRASP_HEIGHT_STEP must be positive")

        self.arm = arm
        self.resolver = resolver or CoordinateResolver(self.config)
        self.state = ExecutorState.IDLE

    def _enter(self, state: ExecutorState):
        logger.debug("Executor: %s -> %s", self.state.value, state.value)
        self.state = state

    def move_piece(self, snapshot: BoardSnapshot, from_square: str, to_square: str):
        """
        Move the piece on one square to another square.

        Args:
            snapshot: Fresh scan of the board.
            from_square: Square to pick from, e.g. "e2".
            to_square: Square to place on, or "-" for the discard area.
        """
        logger.info("Moving piece: %s -> %s", from_square, to_square)

        # Both ends must be known before anything moves
        source = self.resolver.resolve(snapshot, from_square)
        target = self.resolver.resolve(snapshot, to_square)

        if to_square != DISCARD and to_square != from_square:
            occupant = snapshot.find(to_square)
            if not occupant.is_empty:
                logger.info(
                    "Position %s already has a piece (%s), will move it",
                    to_square, occupant.label,
                )
                try:
                    self.move_piece(snapshot, to_square, DISCARD)
                except ChessRobotError as e:
                    raise type(e)(f"Can't move piece out of the way: {e}") from e

        grasp_height = self.pick(source)
        self.place(to_square, target, grasp_height)
        logger.info("Moved piece: %s -> %s", from_square, to_square)

    def pick(self, point: Point3D) -> float:
        """
        Pick up the piece at a point.

        Args:
            point: Target from the resolver; its Z is the first grasp height.

        Returns:
            The height at which the grasp held.
        """
        x, y, height = point
        floor = self.config.GRASP_HEIGHT_FLOOR
        attempts: List[GraspAttempt] = []
        attempt = None

        if height < floor:
            self._enter(ExecutorState.FAILED)
            raise GraspError(
                f"Piece at ({x:.1f}, {y:.1f}) resolves to height {height:.1f}, "
                f"below the floor {floor:.1f}"
            )

        self._enter(ExecutorState.POSITIONING)
        self.arm.gripper.ready()
        self.arm.move_to_safe_height(x, y)
        self._enter(ExecutorState.DESCENDING)

        while True:
            if self.state == ExecutorState.DESCENDING:
                self.arm.move_to_xyz(x, y, height)
                self._enter(ExecutorState.GRASPING)

            elif self.state == ExecutorState.GRASPING:
                attempt = self.arm.gripper.grab(height)
                attempts.append(attempt)
                self._enter(ExecutorState.VERIFYING)

            elif self.state == ExecutorState.VERIFYING:
                if attempt.success:
                    self._enter(ExecutorState.SUCCEEDED)
                else:
                    self._enter(ExecutorState.RETRYING)

            elif self.state == ExecutorState.RETRYING:
                logger.warning("Didn't grab, going to try a little lower")
                height -= self.config.GRASP_HEIGHT_STEP
                if height < floor:
                    self._enter(ExecutorState.FAILED)
                else:
                    self.arm.gripper.ready()
                    self._enter(ExecutorState.DESCENDING)

            elif self.state == ExecutorState.SUCCEEDED:
                logger.info(
                    "Grabbed at height %.1f after %d attempt(s)", height, len(attempts)
                )
                self.arm.move_to_safe_height(x, y)
                return height

            elif self.state == ExecutorState.FAILED:
                raise GraspError(
                    f"Couldn't grab at ({x:.1f}, {y:.1f}) after {len(attempts)} "
                    f"attempts, and won't go below {floor:.1f}"
                )

    def place(self, to_square: str, point: Point3D, grasp_height: float):
        """
        Put the held piece down.

        The piece is lowered to the height it was grabbed at, which puts its
        base back on the board. The discard area gets a plain drop from
        DISCARD_HEIGHT.

        Args:
            to_square: Destination square, or "-".
            point: Target from the resolver.
            grasp_height: Height at which the piece was grabbed.
        """
        x, y, _ = point
        height = self.config.DISCARD_HEIGHT if to_square == DISCARD else grasp_height

        self._enter(ExecutorState.POSITIONING)
        self.arm.move_to_safe_height(x, y)
        self._enter(ExecutorState.DESCENDING)
        self.arm.move_to_xyz(x, y, height)
        self._enter(ExecutorState.RELEASING)
        self.arm.gripper.ready()
        self._enter(ExecutorState.POSITIONING)
        self.arm.move_to_safe_height(x, y)
        self._enter(ExecutorState.DONE)
