"""
Vision module for the chess robot.
Handles captures, board scanning, and occupancy classification.
"""

from .config import VisionConfig
from .board_state import BoardSnapshot, Occupancy, SquareObservation
from .camera import Capture, CameraGeometry, FileCamera, PointCloud, SimulatedCamera
from .board_scanner import BoardScanner
