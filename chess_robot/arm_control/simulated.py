"""
Simulated drivers for the chess robot.
Stand in for the real arm when no hardware is connected.

Every call is recorded in a shared log so a whole pick and place sequence
can be inspected afterwards.
"""

import logging
from collections import deque
from typing import Callable, Iterable, List, Optional, Tuple

from .drivers import Pose

logger = logging.getLogger(__name__)

# (reported success, measured aperture)
GraspOutcome = Tuple[bool, float]


class SimulatedRobot:
    """
    A fake manipulator, gripper, motion service and homing switch.

    Usage:
        sim = SimulatedRobot(grasp_outcomes=[(True, 5), (True, 25)])
        executor = MoveExecutor(ArmController(sim.manipulator, sim.gripper,
                                              sim.motion, sim.homing))
    """

    def __init__(
        self,
        grasp_outcomes: Optional[Iterable[GraspOutcome]] = None,
        default_outcome: GraspOutcome = (True, 30.0),
        unreachable: Optional[Callable[[Pose], bool]] = None,
        homing_fails: bool = False
    ):
        """
        Initialize the simulated robot.

        Args:
            grasp_outcomes: Outcomes returned by successive grasps.
            default_outcome: Outcome once grasp_outcomes runs out.
            unreachable: Returns True for poses the motion service refuses.
            homing_fails: If True, the homing switch always raises.
        """
        self.grasp_outcomes = deque(grasp_outcomes or [])
        self.default_outcome = default_outcome
        self.unreachable = unreachable
        self.homing_fails = homing_fails

        self.calls: List[tuple] = []
        self.opening = 0.0
        self.pose: Optional[Pose] = None
        self._last_aperture = default_outcome[1]

        self.manipulator = SimulatedManipulator(self)
        self.gripper = SimulatedGripper(self)
        self.motion = SimulatedMotion(self)
        self.homing = SimulatedHomingSwitch(self)

    def record(self, *call):
        logger.debug("[SIM] %s", call)
        self.calls.append(call)

    def count(self, name: str) -> int:
        """Count the recorded calls with this name."""
        return sum(1 for call in self.calls if call[0] == name)

    def moves(self) -> List[Pose]:
        """Get every pose sent to the motion service, in order."""
        return [call[1] for call in self.calls if call[0] == "move_to"]

    def next_grasp(self) -> GraspOutcome:
        if self.grasp_outcomes:
            return self.grasp_outcomes.popleft()
        return self.default_outcome


class SimulatedManipulator:
    def __init__(self, robot: SimulatedRobot):
        self.robot = robot

    def set_gripper_opening(self, width: float) -> None:
        self.robot.record("set_gripper_opening", width)
        self.robot.opening = width

    def query_gripper_opening(self) -> float:
        self.robot.record("query_gripper_opening")
        return self.robot._last_aperture


class SimulatedGripper:
    def __init__(self, robot: SimulatedRobot):
        self.robot = robot

    def open(self) -> None:
        self.robot.record("open")

    def grasp(self) -> bool:
        reported, aperture = self.robot.next_grasp()
        self.robot.record("grasp", reported)
        self.robot._last_aperture = aperture
        self.robot.opening = aperture
        return reported


class SimulatedMotion:
    def __init__(self, robot: SimulatedRobot):
        self.robot = robot

    def move_to(self, pose: Pose, reference_frame: str = "world") -> None:
        self.robot.record("move_to", pose, reference_frame)
        if self.robot.unreachable is not None and self.robot.unreachable(pose):
            raise RuntimeError(f"[SIM] pose out of reach: {pose}")
        self.robot.pose = pose


class SimulatedHomingSwitch:
    def __init__(self, robot: SimulatedRobot):
        self.robot = robot

    def set_staging_position(self, slot: int) -> None:
        self.robot.record("set_staging_position", slot)
        if self.robot.homing_fails:
            raise RuntimeError("[SIM] homing switch is stuck")
