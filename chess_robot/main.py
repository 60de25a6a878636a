"""
Main orchestration for the chess robot.

This module ties together:
- Vision (capture, board scanning)
- Arm control (coordinates, pick and place)
- Logic (stored position, move selection)

Run it to make the robot play moves on the real board, or against the
simulated drivers when no hardware is connected.

The simulated camera renders the stored game. Manual moves are not part of
the game and are never stored, so with --move -n 2 or more each rescan
still shows the pieces where the stored game has them.
"""

import sys
import logging
import argparse
import threading
from contextlib import contextmanager
from typing import Optional

# Vision imports
from .vision.board_scanner import BoardScanner
from .vision.board_state import SQUARE_PATTERN, BoardSnapshot
from .vision.camera import FileCamera, SensorCapture, SimulatedCamera
from .vision.config import VisionConfig

# Arm control imports
from .arm_control.arm_controller import ArmController
from .arm_control.config import ArmConfig
from .arm_control.drivers import (
    GripperDriver, HomingSwitch, ManipulatorDriver, MotionService,
)
from .arm_control.move_executor import MoveExecutor
from .arm_control.simulated import SimulatedRobot

# Logic imports
from .logic.engine import ChessEngine, UciEngine
from .logic.game_state import GameStateManager, Move

from .config import RobotConfig
from .errors import ChessRobotError, CommandError, ConfigError, PersistenceError

logger = logging.getLogger(__name__)


class ChessRobot:
    """
    Main controller for the chess robot.

    Two operations, never more than one at a time:
    - manual_move: shuttle a piece between two squares (calibration)
    - auto_play: play engine moves on the board and store the new position

    Whatever happens, the arm goes home at the end of each operation.
    """

    def __init__(
        self,
        capture: SensorCapture,
        manipulator: ManipulatorDriver,
        gripper: GripperDriver,
        motion: MotionService,
        homing: HomingSwitch,
        engine: Optional[ChessEngine] = None,
        fen_path: Optional[str] = None,
        scanner: Optional[BoardScanner] = None,
        config: Optional[RobotConfig] = None,
        arm_config: Optional[ArmConfig] = None,
        vision_config: Optional[VisionConfig] = None
    ):
        """
        Initialize the chess robot and send the arm home.

        Args:
            capture: Source of board captures.
            manipulator: Arm driver (finger opening).
            gripper: Gripper driver (open/grab).
            motion: Motion planning service.
            homing: Switch holding the staging pose.
            engine: Chess engine. None plays the first legal move. The robot
                owns it and closes it in close().
            fen_path: Stored position. Defaults to RobotConfig.fen_path().
            scanner: Board scanner. Built from vision_config if not given.
            config: Robot configuration.
            arm_config: Arm configuration.
            vision_config: Vision configuration.
        """
        required = {
            "capture": capture,
            "manipulator": manipulator,
            "gripper": gripper,
            "motion": motion,
            "homing": homing,
        }
        missing = [name for name, dep in required.items() if dep is None]
        if missing:
            if engine is not None:
                engine.close()
            raise ConfigError(f"Need a {', '.join(missing)}")

        self.config = config or RobotConfig()
        self.capture = capture
        self.engine = engine
        self.scanner = scanner or BoardScanner(vision_config)
        self.arm = ArmController(manipulator, gripper, motion, homing, arm_config)
        self.executor = MoveExecutor(self.arm)
        self.state = GameStateManager(
            fen_path or self.config.fen_path(),
            engine=engine,
            move_time=self.config.ENGINE_MOVE_TIME,
        )
        self._lock = threading.Lock()

        logger.info("Game file: %s", self.state.fen_path)
        try:
            self.arm.go_home()
        except ChessRobotError:
            self.close()
            raise

    def close(self):
        """Stop the engine."""
        if self.engine is not None:
            self.engine.close()
            self.engine = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @contextmanager
    def _operation(self, name: str):
        """Run one operation under the lock, then always go home."""
        with self._lock:
            logger.info("=== %s ===", name)
            try:
                yield
            finally:
                try:
                    self.arm.go_home()
                except ChessRobotError as e:
                    logger.warning("Can't go home: %s", e)

    def scan(self) -> BoardSnapshot:
        """Capture the board and classify every square."""
        capture = self.capture.capture()
        return self.scanner.scan(capture.image, capture.cloud, capture.geometry)

    def manual_move(self, from_square: str, to_square: str, repeat_count: int = 1):
        """
        Move a piece back and forth between two squares.

        Args:
            from_square: Square the piece starts on.
            to_square: Square to move it to.
            repeat_count: Number of moves; odd iterations go back.
        """
        with self._operation(f"Move {from_square} to {to_square} x{repeat_count}"):
            for i in range(repeat_count):
                self.arm.go_home()
                src, dst = from_square, to_square
                if i % 2 == 1:
                    src, dst = dst, src
                snapshot = self.scan()
                self.executor.move_piece(snapshot, src, dst)

    def auto_play(self, move_count: int = 1) -> str:
        """
        Play engine moves on the board.

        Args:
            move_count: How many moves to play.

        Returns:
            UCI label of the last move played.
        """
        with self._operation(f"Play {move_count} move(s)"):
            if move_count < 1:
                raise CommandError(f"Need at least one move to play, got {move_count}")
            move = None
            for _ in range(move_count):
                move = self._make_a_move()
            return move.uci

    def _make_a_move(self) -> Move:
        # Unsupported moves are refused here, before the arm does anything
        board = self.state.load()
        move = self.state.pick_move(board)

        self.arm.go_home()
        snapshot = self.scan()
        self.executor.move_piece(snapshot, move.from_square, move.to_square)

        new_board = self.state.apply_move(board, move)
        try:
            self.state.save(new_board)
        except PersistenceError:
            logger.error(
                "Move %s was made on the board but not saved; "
                "stored position is now out of date", move,
            )
            raise

        logger.info(">>> Robot played %s", move)
        return move

    def do_command(self, cmd: dict) -> dict:
        """
        Run a command.

        Commands:
            {"move": {"from": "e2", "to": "e4", "n": 2}}  -> {}
            {"play": 3}                                    -> {"move": "<uci>"}

        Args:
            cmd: The command.

        Returns:
            The result.
        """
        if not isinstance(cmd, dict):
            raise CommandError(f"Bad cmd {cmd!r}")

        move = cmd.get("move")
        if isinstance(move, dict) and move.get("from") and move.get("to"):
            n = move.get("n", move.get("repeat_count", 1))
            for key in ("from", "to"):
                if not _is_square(move[key]):
                    raise CommandError(f"Bad square {move[key]!r} for '{key}'")
            if not _is_count(n):
                raise CommandError(f"Bad repeat count {n!r}")
            logger.info("move %s to %s", move["from"], move["to"])
            self.manual_move(move["from"], move["to"], n)
            return {}

        play = cmd.get("play")
        if _is_count(play) and play > 0:
            return {"move": self.auto_play(play)}

        raise CommandError(f"Bad cmd {cmd!r}")


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_square(value) -> bool:
    return isinstance(value, str) and SQUARE_PATTERN.fullmatch(value) is not None


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Chess Robot")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument(
        "--move", nargs=2, metavar=("FROM", "TO"),
        help="Move a piece between two squares (calibration)"
    )
    action.add_argument(
        "--play", type=int, metavar="N",
        help="Play N engine moves"
    )
    parser.add_argument(
        "-n", type=int, default=1,
        help="Number of back-and-forth moves for --move. Without --image/--cloud "
             "the simulated camera shows the stored game, which --move never "
             "changes, so every shuttle after the first sees the unmoved board"
    )
    parser.add_argument(
        "--data-dir",
        help=f"Directory of the stored game (default: ${RobotConfig.DATA_DIR_ENV})"
    )
    parser.add_argument(
        "--engine", default=RobotConfig.ENGINE_PATH,
        help="UCI engine executable"
    )
    parser.add_argument(
        "--no-engine", action="store_true",
        help="Play the first legal move instead of asking an engine"
    )
    parser.add_argument("--image", help="Replay this camera image")
    parser.add_argument("--cloud", help="Replay this point cloud (.npz)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    fen_path = RobotConfig.fen_path(args.data_dir)
    if args.image and args.cloud:
        capture = FileCamera(args.image, args.cloud)
    else:
        # Simulated camera shows the stored position
        capture = SimulatedCamera(GameStateManager(fen_path).load)

    # No hardware drivers ship with the project; run on the simulated arm
    sim = SimulatedRobot()

    try:
        engine = None if args.no_engine else UciEngine(args.engine)
        with ChessRobot(
            capture, sim.manipulator, sim.gripper, sim.motion, sim.homing,
            engine=engine, fen_path=fen_path,
        ) as robot:
            if args.move:
                result = robot.do_command(
                    {"move": {"from": args.move[0], "to": args.move[1], "n": args.n}}
                )
            else:
                result = robot.do_command({"play": args.play})
    except ChessRobotError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return 130

    if result:
        print(result["move"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
