"""
Vision configuration for the chess robot.
All the settings for board scanning and occupancy classification.

All distances are in MILLIMETERS, matching the depth camera's point cloud.
"""


class VisionConfig:
    """
    Configuration class for vision settings.
    Change these values based on your setup!
    """

    # ==================== BOARD SETTINGS ====================
    # Chess is an 8x8 grid
    BOARD_SQUARES = 8
    FILES = "abcdefgh"
    RANKS = "12345678"

    # ==================== OCCUPANCY CLASSIFICATION ====================
    # A point belongs to a piece if it stands more than this far above the
    # lowest (farthest from camera) point of its square
    PIECE_HEIGHT_BAND = 20.0

    # Squares with this many piece points or fewer are empty
    MIN_PIECE_POINTS = 10

    # Mean RGB brightness (0-255) at or above which a piece is white
    BRIGHTNESS_THRESHOLD = 128

    # ==================== SIMULATED CAMERA ====================
    # Used by SimulatedCamera to render a synthetic capture of a position
    SIM_IMAGE_WIDTH = 640
    SIM_IMAGE_HEIGHT = 480
    SIM_FX = 600.0
    SIM_FY = 600.0
    SIM_BOARD_DEPTH = 600.0   # Camera to board surface
    SIM_PIECE_HEIGHT = 40.0   # Height of a piece top above the board
    SIM_SAMPLE_STEP = 6       # Pixels between sampled points
    SIM_PIECE_RADIUS = 0.3    # Fraction of a square covered by a piece top
    SIM_WHITE_RGB = (230, 225, 215)
    SIM_BLACK_RGB = (35, 30, 30)
    SIM_LIGHT_SQUARE_RGB = (200, 180, 140)
    SIM_DARK_SQUARE_RGB = (110, 80, 50)

    # ==================== DEBUG SETTINGS ====================
    SAVE_DEBUG_IMAGES = False
    DEBUG_OUTPUT_DIR = "debug_output"
    DEBUG_TEXT_COLOR = (0, 0, 255)  # BGR red
