"""
Board state produced by one scan.
A snapshot of 64 square observations, each with its occupancy and points.
"""

import re
from enum import IntEnum
from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field

import numpy as np

from .config import VisionConfig


SQUARE_PATTERN = re.compile(r"[a-h][1-8]")

ALL_SQUARES = tuple(
    f"{file}{rank}" for rank in VisionConfig.RANKS for file in VisionConfig.FILES
)


class Occupancy(IntEnum):
    """What is standing on a square. The value is the label suffix."""
    EMPTY = 0
    WHITE = 1
    BLACK = 2


@dataclass(frozen=True, eq=False)
class SquareObservation:
    """
    One square as seen in a capture.
    """
    square: str                      # e.g. "e4"
    occupancy: Occupancy
    region: np.ndarray = field(repr=False)  # (N, 3) points in world frame
    center: Optional[Tuple[float, float, float]] = None  # Centroid of region
    peak: Optional[Tuple[float, float, float]] = None    # Highest point of region

    @property
    def label(self) -> str:
        """Square plus occupancy, e.g. "e4-1" for a white piece on e4."""
        return f"{self.square}-{int(self.occupancy)}"

    @property
    def is_empty(self) -> bool:
        return self.label.endswith("-0")

    @property
    def point_count(self) -> int:
        return len(self.region)


@dataclass(frozen=True)
class BoardSnapshot:
    """
    The state of the whole board from one capture.

    Observations are ordered rank 1 to 8, and file a to h within a rank.
    """
    squares: Tuple[SquareObservation, ...]

    def __post_init__(self):
        names = [obs.square for obs in self.squares]
        if len(names) != len(ALL_SQUARES) or set(names) != set(ALL_SQUARES):
            missing = sorted(set(ALL_SQUARES) - set(names))
            raise ValueError(
                f"Snapshot needs all 64 squares exactly once "
                f"(got {len(names)}, missing {missing})"
            )

    def find(self, square: str) -> Optional[SquareObservation]:
        """
        Find the observation for a square.

        Args:
            square: Square name, e.g. "e4".

        Returns:
            The observation whose label starts with the square, or None.
            Anything but a full square name, like "e" or "e44", is None.
        """
        if not SQUARE_PATTERN.fullmatch(square):
            return None
        for obs in self.squares:
            if obs.label.startswith(square):
                return obs
        return None

    def occupancy_map(self) -> Dict[str, Occupancy]:
        """Get {square: occupancy} for the whole board."""
        return {obs.square: obs.occupancy for obs in self.squares}

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(obs.label for obs in self.squares)

    def __iter__(self):
        return iter(self.squares)

    def __len__(self):
        return len(self.squares)
