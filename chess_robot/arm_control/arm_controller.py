"""
High-level arm controller for the chess robot.
Moves the gripper to points in the world frame and sends the arm home.
"""

import time
import logging
from typing import Optional

from ..errors import MotionError
from .config import ArmConfig
from .drivers import (
    GripperDriver, HomingSwitch, ManipulatorDriver, MotionService, Pose,
)
from .gripper import Gripper

logger = logging.getLogger(__name__)


class ArmController:
    """
    High-level controller for the manipulator.

    Wraps the platform drivers: poses go to the motion service, finger
    control goes through Gripper, homing goes through the homing switch.
    """

    def __init__(
        self,
        manipulator: ManipulatorDriver,
        gripper: GripperDriver,
        motion: MotionService,
        homing: HomingSwitch,
        config: Optional[ArmConfig] = None
    ):
        """
        Initialize the arm controller.

        Args:
            manipulator: Arm driver (finger opening).
            gripper: Gripper driver (open/grab).
            motion: Motion planning service.
            homing: Switch holding the staging pose.
            config: Arm configuration.
        """
        self.config = config or ArmConfig()
        self.motion = motion
        self.homing = homing
        self.gripper = Gripper(manipulator, gripper, self.config)

    def pose_for(self, x: float, y: float, z: float) -> Pose:
        """
        Get the gripper pose for a point.

        The gripper points straight down. Past TILT_START_X it leans forward
        a little so the far ranks stay within reach.
        """
        ox = 0.0
        if x > self.config.TILT_START_X:
            ox = (x - self.config.TILT_START_X) * self.config.TILT_PER_MM
        return Pose(x, y, z, ox=ox, oy=0.0, oz=-1.0, theta=self.config.GRIPPER_THETA)

    def move_to_xyz(self, x: float, y: float, z: float):
        """
        Move the gripper to a point.

        Args:
            x, y, z: Target position in millimeters, world frame.
        """
        pose = self.pose_for(x, y, z)
        logger.debug("Moving to XYZ: (%.1f, %.1f, %.1f)", x, y, z)
        try:
            self.motion.move_to(pose, self.config.REFERENCE_FRAME)
        except Exception as e:
            raise MotionError(
                f"Could not move to ({x:.1f}, {y:.1f}, {z:.1f}): {e}"
            ) from e

    def move_to_safe_height(self, x: float, y: float):
        """Move above a point at SAFE_HEIGHT."""
        self.move_to_xyz(x, y, self.config.SAFE_HEIGHT)

    def go_home(self):
        """
        Send the arm to the staging pose and open the gripper.

        Waits HOME_SETTLE_DELAY so the arm is still before the next capture.
        """
        logger.info("Going to home position...")
        try:
            self.homing.set_staging_position(self.config.HOME_SLOT)
        except Exception as e:
            raise MotionError(f"Could not go home: {e}") from e
        self.gripper.open()
        time.sleep(self.config.HOME_SETTLE_DELAY)
