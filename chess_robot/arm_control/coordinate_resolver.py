"""
Square to world coordinates for the chess robot.
"""

from typing import Optional, Tuple

from ..errors import PerceptionError
from ..vision.board_state import BoardSnapshot
from .config import ArmConfig

# Where a displaced or captured piece goes
DISCARD = "-"

Point3D = Tuple[float, float, float]


class CoordinateResolver:
    """
    Finds the point the gripper should aim at for a square.

    An empty square resolves to the middle of its points. An occupied square
    resolves to the top of the piece, shifted halfway toward the square's
    center because tall pieces don't stand straight under their top point.
    """

    def __init__(self, config: Optional[ArmConfig] = None):
        self.config = config or ArmConfig()

    def resolve(self, snapshot: Optional[BoardSnapshot], square: str) -> Point3D:
        """
        Get the target point for a square.

        Args:
            snapshot: Latest scan. Not used for the discard area.
            square: Square name, or "-" for the discard area.

        Returns:
            (x, y, z) in millimeters, world frame.
        """
        if square == DISCARD:
            return tuple(float(v) for v in self.config.DISCARD_POINT)

        obs = snapshot.find(square) if snapshot is not None else None
        if obs is None:
            raise PerceptionError(f"Can't find object for: {square}")
        if obs.center is None or obs.peak is None:
            raise PerceptionError(f"No points seen on {obs.label}")

        if obs.is_empty:
            return obs.center

        cx, cy, _ = obs.center
        px, py, pz = obs.peak
        return (cx + px) / 2, (cy + py) / 2, pz
