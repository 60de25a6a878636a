"""
Arm control module for the chess robot.
Handles coordinates, gripper verification, and pick and place.
"""

from .config import ArmConfig
from .drivers import Pose
from .gripper import Gripper, GraspAttempt
from .arm_controller import ArmController
from .coordinate_resolver import CoordinateResolver, DISCARD
from .move_executor import ExecutorState, MoveExecutor
