"""
Camera module for the chess robot.
Handles the capture data types and the capture sources.

A capture is a color image plus an aligned point cloud from a depth camera,
together with the geometry needed to project points into the image.
"""

import logging
from typing import Callable, Optional, Protocol
from dataclasses import dataclass, field

import chess
import cv2
import numpy as np

from ..errors import PerceptionError
from .board_state import Occupancy
from .config import VisionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CameraGeometry:
    """
    Pinhole intrinsics plus the camera pose in the world frame.
    """
    fx: float
    fy: float
    ppx: float   # Principal point X (pixels)
    ppy: float   # Principal point Y (pixels)
    camera_to_world: np.ndarray = field(default_factory=lambda: np.eye(4))

    def project(self, points: np.ndarray) -> np.ndarray:
        """
        Project camera-frame points into pixel coordinates.

        Args:
            points: (N, 3) points, Z is depth away from the camera.

        Returns:
            (N, 2) pixel coordinates. Points at or behind the camera get -inf.
        """
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        z = points[:, 2]
        pixels = np.full((len(points), 2), -np.inf)
        front = z > 0
        pixels[front, 0] = self.fx * points[front, 0] / z[front] + self.ppx
        pixels[front, 1] = self.fy * points[front, 1] / z[front] + self.ppy
        return pixels

    def to_world(self, points: np.ndarray) -> np.ndarray:
        """Transform camera-frame points into the world frame."""
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        homogeneous = np.hstack([points, np.ones((len(points), 1))])
        return (homogeneous @ np.asarray(self.camera_to_world, dtype=float).T)[:, :3]


@dataclass
class PointCloud:
    """
    Points from the depth camera, in the camera frame (millimeters).
    """
    points: np.ndarray                   # (N, 3)
    colors: Optional[np.ndarray] = None  # (N, 3) RGB 0-255
    color_mask: Optional[np.ndarray] = None  # (N,) True where color is valid

    def __len__(self):
        return len(self.points)

    def valid_colors(self) -> np.ndarray:
        """Get a boolean mask of the points that carry a color sample."""
        if self.colors is None:
            return np.zeros(len(self.points), dtype=bool)
        if self.color_mask is None:
            return np.ones(len(self.points), dtype=bool)
        return np.asarray(self.color_mask, dtype=bool)


@dataclass
class Capture:
    """
    One synchronized capture from the camera.
    """
    image: np.ndarray         # BGR image
    cloud: PointCloud
    geometry: CameraGeometry


class SensorCapture(Protocol):
    """Anything that can grab a fresh capture of the board."""

    def capture(self) -> Capture:
        ...


class FileCamera:
    """
    Replays a capture stored on disk.

    The image is any format OpenCV can read. The point cloud is an .npz with
    `points`, optional `colors` and `color_mask`, `intrinsics`
    ([fx, fy, ppx, ppy]) and optional `camera_to_world` (4x4).
    """

    def __init__(self, image_path: str, cloud_path: str):
        self.image_path = image_path
        self.cloud_path = cloud_path

    def capture(self) -> Capture:
        image = cv2.imread(self.image_path)
        if image is None:
            raise PerceptionError(f"Could not read image from {self.image_path}")

        try:
            data = np.load(self.cloud_path)
        except (OSError, ValueError) as e:
            raise PerceptionError(
                f"Could not read point cloud from {self.cloud_path}: {e}"
            ) from e

        with data:
            if "points" not in data or "intrinsics" not in data:
                raise PerceptionError(
                    f"{self.cloud_path} needs 'points' and 'intrinsics' arrays"
                )
            fx, fy, ppx, ppy = (float(v) for v in data["intrinsics"])
            geometry = CameraGeometry(
                fx, fy, ppx, ppy,
                camera_to_world=(
                    data["camera_to_world"] if "camera_to_world" in data else np.eye(4)
                ),
            )
            cloud = PointCloud(
                points=data["points"],
                colors=data["colors"] if "colors" in data else None,
                color_mask=data["color_mask"] if "color_mask" in data else None,
            )

        logger.info(
            "Loaded capture %s (%dx%d) with %d points",
            self.image_path, image.shape[1], image.shape[0], len(cloud),
        )
        return Capture(image=image, cloud=cloud, geometry=geometry)


class SimulatedCamera:
    """
    Renders a synthetic capture of a chess position.

    The camera looks straight down at the board. Each piece shows up as a
    disc of points standing SIM_PIECE_HEIGHT above its square, so the
    scanner sees the same thing it would see on the real board.
    """

    def __init__(
        self,
        position_source: Callable[[], chess.Board],
        config: Optional[VisionConfig] = None
    ):
        """
        Initialize the simulated camera.

        Args:
            position_source: Returns the position to render on each capture.
            config: Vision configuration.
        """
        self.position_source = position_source
        self.config = config or VisionConfig()

    def geometry(self) -> CameraGeometry:
        cfg = self.config
        depth = cfg.SIM_BOARD_DEPTH
        # Camera looks down: world Z up, board surface at world Z = 0
        camera_to_world = np.array([
            [1.0, 0.0, 0.0, 0.0],
            [0.0, -1.0, 0.0, 0.0],
            [0.0, 0.0, -1.0, depth],
            [0.0, 0.0, 0.0, 1.0],
        ])
        return CameraGeometry(
            cfg.SIM_FX, cfg.SIM_FY,
            cfg.SIM_IMAGE_WIDTH / 2, cfg.SIM_IMAGE_HEIGHT / 2,
            camera_to_world=camera_to_world,
        )

    def capture(self) -> Capture:
        cfg = self.config
        board = self.position_source()
        geometry = self.geometry()

        width, height = cfg.SIM_IMAGE_WIDTH, cfg.SIM_IMAGE_HEIGHT
        side = min(width, height)
        square_size = side // cfg.BOARD_SQUARES
        x_offset = (width - side) // 2
        y_offset = (height - side) // 2
        step = cfg.SIM_SAMPLE_STEP
        radius = cfg.SIM_PIECE_RADIUS * square_size

        image = np.zeros((height, width, 3), dtype=np.uint8)
        pixels, depths, colors = [], [], []

        for rank_index, rank in enumerate(cfg.RANKS):
            for file_index, file in enumerate(cfg.FILES):
                x0 = x_offset + (cfg.BOARD_SQUARES - 1 - file_index) * square_size
                y0 = y_offset + rank_index * square_size
                cx = x0 + square_size / 2
                cy = y0 + square_size / 2

                occupancy = occupancy_of(board, f"{file}{rank}")
                floor_rgb = (
                    cfg.SIM_DARK_SQUARE_RGB if (file_index + rank_index) % 2 == 0
                    else cfg.SIM_LIGHT_SQUARE_RGB
                )
                piece_rgb = (
                    cfg.SIM_WHITE_RGB if occupancy == Occupancy.WHITE
                    else cfg.SIM_BLACK_RGB
                )

                cv2.rectangle(
                    image, (x0, y0), (x0 + square_size - 1, y0 + square_size - 1),
                    floor_rgb[::-1], -1
                )
                if occupancy != Occupancy.EMPTY:
                    cv2.circle(
                        image, (int(cx), int(cy)), int(radius), piece_rgb[::-1], -1
                    )

                for v in np.arange(y0 + step / 2, y0 + square_size, step):
                    for u in np.arange(x0 + step / 2, x0 + square_size, step):
                        on_piece = (
                            occupancy != Occupancy.EMPTY
                            and (u - cx) ** 2 + (v - cy) ** 2 <= radius ** 2
                        )
                        pixels.append((u, v))
                        if on_piece:
                            depths.append(cfg.SIM_BOARD_DEPTH - cfg.SIM_PIECE_HEIGHT)
                            colors.append(piece_rgb)
                        else:
                            depths.append(cfg.SIM_BOARD_DEPTH)
                            colors.append(floor_rgb)

        pixels = np.array(pixels, dtype=float)
        z = np.array(depths, dtype=float)
        points = np.column_stack([
            (pixels[:, 0] - geometry.ppx) * z / geometry.fx,
            (pixels[:, 1] - geometry.ppy) * z / geometry.fy,
            z,
        ])
        cloud = PointCloud(points=points, colors=np.array(colors, dtype=float))

        logger.debug("Simulated capture of %s (%d points)", board.fen(), len(cloud))
        return Capture(image=image, cloud=cloud, geometry=geometry)


def occupancy_of(board: chess.Board, square: str) -> Occupancy:
    """Get the occupancy of a square in a python-chess position."""
    piece = board.piece_at(chess.parse_square(square))
    if piece is None:
        return Occupancy.EMPTY
    return Occupancy.WHITE if piece.color == chess.WHITE else Occupancy.BLACK
