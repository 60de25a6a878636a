"""
Board scanner for the chess robot.
Splits a capture into the 64 squares and classifies what stands on each one.
"""

import os
import time
import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from .board_state import BoardSnapshot, Occupancy, SquareObservation
from .camera import CameraGeometry, PointCloud
from .config import VisionConfig

logger = logging.getLogger(__name__)


class BoardScanner:
    """
    Turns one capture into a BoardSnapshot.

    The board fills the centered square of the image. As the camera sees it,
    rank 1 is the top row and file h is the left-most column:

        h1 g1 f1 ... a1
        h2 g2 f2 ... a2
        ...
        h8 g8 f8 ... a8
    """

    def __init__(self, config: Optional[VisionConfig] = None):
        """
        Initialize the board scanner.

        Args:
            config: Vision configuration.
        """
        self.config = config or VisionConfig()

    def board_layout(self, width: int, height: int) -> Tuple[int, int, int]:
        """
        Get the board area inside an image.

        Args:
            width: Image width in pixels.
            height: Image height in pixels.

        Returns:
            (square_size, x_offset, y_offset) in pixels.
        """
        side = min(width, height)
        square_size = side // self.config.BOARD_SQUARES
        return square_size, (width - side) // 2, (height - side) // 2

    def cell_box(
        self,
        square: str,
        square_size: int,
        x_offset: int,
        y_offset: int
    ) -> Tuple[int, int, int, int]:
        """
        Get the image box of a square.

        Returns:
            (x1, y1, x2, y2), x2 and y2 exclusive.
        """
        file_index = self.config.FILES.index(square[0])
        rank_index = self.config.RANKS.index(square[1])
        x1 = x_offset + (self.config.BOARD_SQUARES - 1 - file_index) * square_size
        y1 = y_offset + rank_index * square_size
        return x1, y1, x1 + square_size, y1 + square_size

    def scan(
        self,
        image: np.ndarray,
        cloud: PointCloud,
        geometry: CameraGeometry
    ) -> BoardSnapshot:
        """
        Classify every square of the board.

        Args:
            image: Color image from the camera (only its size is used).
            cloud: Point cloud aligned with the image, camera frame.
            geometry: Intrinsics and camera pose.

        Returns:
            Snapshot with all 64 squares.
        """
        height, width = image.shape[:2]
        square_size, x_offset, y_offset = self.board_layout(width, height)
        logger.info(
            "Scanning %dx%d image: square size %d, offset (%d, %d), %d points",
            width, height, square_size, x_offset, y_offset, len(cloud),
        )

        points = np.asarray(cloud.points, dtype=float).reshape(-1, 3)
        pixels = geometry.project(points)
        has_color = cloud.valid_colors()
        colors = (
            np.asarray(cloud.colors, dtype=float) if cloud.colors is not None
            else np.zeros_like(points)
        )

        observations: List[SquareObservation] = []
        for rank in self.config.RANKS:
            for file in self.config.FILES:
                square = f"{file}{rank}"
                x1, y1, x2, y2 = self.cell_box(square, square_size, x_offset, y_offset)
                # Points behind the camera project to -inf and drop out
                inside = (
                    (pixels[:, 0] >= x1) & (pixels[:, 0] < x2)
                    & (pixels[:, 1] >= y1) & (pixels[:, 1] < y2)
                )

                occupancy = self.estimate_occupancy(
                    points[inside], colors[inside], has_color[inside]
                )
                region = geometry.to_world(points[inside])
                center, peak = None, None
                if len(region):
                    center = tuple(float(v) for v in region.mean(axis=0))
                    peak = tuple(float(v) for v in region[np.argmax(region[:, 2])])

                logger.debug(
                    "%s : %s (%d points)", square, occupancy.name, len(region)
                )
                observations.append(SquareObservation(
                    square=square,
                    occupancy=occupancy,
                    region=region,
                    center=center,
                    peak=peak,
                ))

        snapshot = BoardSnapshot(tuple(observations))
        counts = {o: 0 for o in Occupancy}
        for obs in snapshot:
            counts[obs.occupancy] += 1
        logger.info(
            "Scan done: %d white, %d black, %d empty",
            counts[Occupancy.WHITE], counts[Occupancy.BLACK], counts[Occupancy.EMPTY],
        )

        if self.config.SAVE_DEBUG_IMAGES:
            self.save_debug(image, snapshot)

        return snapshot

    def estimate_occupancy(
        self,
        points: np.ndarray,
        colors: np.ndarray,
        has_color: np.ndarray
    ) -> Occupancy:
        """
        Decide whether a square holds a white piece, a black piece or nothing.

        Only colored points standing more than PIECE_HEIGHT_BAND above the
        square's floor count. Depth grows away from the camera, so the floor
        is the largest Z in the region.

        Args:
            points: (N, 3) camera-frame points of one square.
            colors: (N, 3) RGB colors of those points.
            has_color: (N,) mask of points with a valid color.

        Returns:
            The occupancy of the square.
        """
        if len(points) == 0:
            return Occupancy.EMPTY

        floor = points[:, 2].max()
        piece = (points[:, 2] < floor - self.config.PIECE_HEIGHT_BAND) & has_color
        count = int(piece.sum())

        if count <= self.config.MIN_PIECE_POINTS:
            return Occupancy.EMPTY

        brightness = colors[piece].mean(axis=0).mean()
        if brightness >= self.config.BRIGHTNESS_THRESHOLD:
            return Occupancy.WHITE
        return Occupancy.BLACK

    def draw_debug(self, image: np.ndarray, snapshot: BoardSnapshot) -> np.ndarray:
        """
        Draw the square labels on the board area of the image.

        Args:
            image: Camera image (BGR).
            snapshot: Snapshot produced from that image.

        Returns:
            Cropped board image with one label per square.
        """
        height, width = image.shape[:2]
        square_size, x_offset, y_offset = self.board_layout(width, height)
        side = square_size * self.config.BOARD_SQUARES
        debug = image[y_offset:y_offset + side, x_offset:x_offset + side].copy()

        for obs in snapshot:
            x1, y1, _, _ = self.cell_box(obs.square, square_size, 0, 0)
            text_x = x1 + square_size // 2 - len(obs.label) * 3
            text_y = y1 + square_size // 2 + 3
            cv2.putText(
                debug, obs.label, (text_x, text_y),
                cv2.FONT_HERSHEY_PLAIN, 0.8, self.config.DEBUG_TEXT_COLOR, 1
            )

        return debug

    def save_debug(self, image: np.ndarray, snapshot: BoardSnapshot) -> Optional[str]:
        """Write the debug image to DEBUG_OUTPUT_DIR. Returns the path."""
        os.makedirs(self.config.DEBUG_OUTPUT_DIR, exist_ok=True)
        path = os.path.join(
            self.config.DEBUG_OUTPUT_DIR, f"scan_{int(time.time() * 1000)}.jpg"
        )
        if not cv2.imwrite(path, self.draw_debug(image, snapshot)):
            logger.warning("Could not write debug image %s", path)
            return None
        logger.info("Saved debug image: %s", path)
        return path
