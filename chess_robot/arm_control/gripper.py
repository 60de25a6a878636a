"""
Gripper control for the chess robot.
Handles opening the fingers and verifying that a grasp really holds a piece.
"""

import time
import logging
from typing import Optional
from dataclasses import dataclass

from ..errors import MotionError
from .config import ArmConfig
from .drivers import GripperDriver, ManipulatorDriver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraspAttempt:
    """
    One try at picking up a piece.
    """
    height: float      # Gripper height for this try
    aperture: float    # Measured finger opening after closing
    reported: bool     # What the gripper driver said
    success: bool      # Whether the grasp was accepted


class Gripper:
    """
    Controls the gripper fingers.

    The gripper driver opens and grabs; the manipulator sets and reads the
    finger opening, which is how a grab is double checked.
    """

    def __init__(
        self,
        manipulator: ManipulatorDriver,
        driver: GripperDriver,
        config: Optional[ArmConfig] = None
    ):
        """
        Initialize the gripper.

        Args:
            manipulator: Arm driver that owns the finger opening.
            driver: Gripper open/grab driver.
            config: Arm configuration.
        """
        self.manipulator = manipulator
        self.driver = driver
        self.config = config or ArmConfig()

    def open(self):
        """Fully open the gripper."""
        logger.debug("Opening gripper...")
        try:
            self.driver.open()
        except Exception as e:
            raise MotionError(f"Could not open gripper: {e}") from e

    def ready(self):
        """Open the fingers to the width used to approach and release a piece."""
        width = self.config.GRIPPER_READY_WIDTH
        logger.debug("Setting gripper opening to %s", width)
        try:
            self.manipulator.set_gripper_opening(width)
        except Exception as e:
            raise MotionError(f"Could not set gripper opening to {width}: {e}") from e

    def grab(self, height: float) -> GraspAttempt:
        """
        Close the gripper and check that it holds something.

        A grab the driver reports as successful still fails if the fingers
        closed tighter than MIN_GRASP_APERTURE: they met each other, not a
        piece.

        Args:
            height: Height the gripper is at, recorded with the attempt.

        Returns:
            The attempt, with success set if the grasp was verified.
        """
        try:
            reported = bool(self.driver.grasp())
            time.sleep(self.config.GRASP_SETTLE_DELAY)
            aperture = float(self.manipulator.query_gripper_opening())
        except Exception as e:
            raise MotionError(f"Grasp failed at height {height:.1f}: {e}") from e

        success = reported
        if reported and aperture < self.config.MIN_GRASP_APERTURE:
            logger.warning(
                "Gripper says it grabbed, but the opening is only %.1f", aperture
            )
            success = False

        logger.debug(
            "Grasp at %.1f: reported=%s aperture=%.1f -> %s",
            height, reported, aperture, success,
        )
        return GraspAttempt(
            height=height, aperture=aperture, reported=reported, success=success
        )
