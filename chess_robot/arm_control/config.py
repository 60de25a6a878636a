"""
Arm control configuration for the chess robot.
Heights, gripper widths and timing for pick and place.
"""


class ArmConfig:
    """
    Configuration for the manipulator.

    IMPORTANT: Measure your actual robot and update these values!
    All distances are in MILLIMETERS in the world frame (Z up, board at 0).
    """

    # ==================== MOVEMENT HEIGHTS ====================
    # Height for moving between squares, clear of every piece
    SAFE_HEIGHT = 200.0

    # Height at which a piece is dropped in the discard area
    DISCARD_HEIGHT = 300.0

    # ==================== DISCARD AREA ====================
    # Where captured and displaced pieces go, off the board
    DISCARD_POINT = (400.0, -400.0, 400.0)

    # ==================== GRASPING ====================
    # Gripper opening before a grasp and to release a piece
    GRIPPER_READY_WIDTH = 450.0

    # A grasp only counts if the fingers stay at least this far apart
    MIN_GRASP_APERTURE = 20.0

    # How much lower to try after a missed grasp
    GRASP_HEIGHT_STEP = 10.0

    # Never try to grasp below this height (the board surface)
    GRASP_HEIGHT_FLOOR = 0.0

    # ==================== ORIENTATION ====================
    # Gripper points straight down, rotated by this many degrees
    GRIPPER_THETA = 0.0

    # Beyond this X the gripper tilts forward to reach far squares
    TILT_START_X = 300.0
    TILT_PER_MM = 1.0 / 1000

    REFERENCE_FRAME = "world"

    # ==================== HOMING ====================
    # Slot of the homing switch holding the staging pose
    HOME_SLOT = 2

    # ==================== DELAYS (seconds) ====================
    GRASP_SETTLE_DELAY = 0.3
    HOME_SETTLE_DELAY = 1.0
