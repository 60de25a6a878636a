"""
Tests for vision-guided play.
The whole robot on a simulated camera and arm: scan, move, store.
"""

import os
import time
import logging
import threading

import chess
import pytest

from .arm_control.config import ArmConfig
from .arm_control.simulated import SimulatedRobot
from .config import RobotConfig
from .conftest import FastArmConfig, FixedEngine
from .errors import (
    CommandError, ConfigError, GraspError, MotionError, PersistenceError, UnsupportedMoveError,
)
from .logic import GameStateManager
from .main import ChessRobot, main
from .vision import SimulatedCamera

CAPTURE_FEN = "rnbqkbnr/ppp1pppp/8/3p4/4P3/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 2"
CASTLING_FEN = "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"


class CountingCamera(SimulatedCamera):
    """Simulated camera that counts its captures."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.captures = 0

    def capture(self):
        self.captures += 1
        return super().capture()


@pytest.fixture
def fen_path(tmp_path):
    return str(tmp_path / "fen.txt")


@pytest.fixture
def make_robot(fen_path, sim):
    """Build a robot whose camera shows the stored position."""
    robots = []

    def factory(engine=None, fen=None):
        if fen is not None:
            GameStateManager(fen_path).save(chess.Board(fen))
        camera = CountingCamera(GameStateManager(fen_path).load)
        robot = ChessRobot(
            camera, sim.manipulator, sim.gripper, sim.motion, sim.homing,
            engine=engine, fen_path=fen_path, arm_config=FastArmConfig(),
        )
        robots.append(robot)
        return robot

    yield factory
    for robot in robots:
        robot.close()


def stored_fen(fen_path):
    with open(fen_path) as f:
        return f.read()


def is_discard(pose):
    return (pose.x, pose.y) == (400.0, -400.0)


class TestAutoPlay:
    def test_engine_move(self, make_robot, sim, fen_path):
        engine = FixedEngine("e2e4")
        robot = make_robot(engine)

        assert robot.auto_play(1) == "e2e4"

        expected = chess.Board()
        expected.push_uci("e2e4")
        assert stored_fen(fen_path) == expected.fen()
        assert sim.count("grasp") == 1
        assert not any(is_discard(pose) for pose in sim.moves())
        assert engine.budgets == [RobotConfig.ENGINE_MOVE_TIME]

    def test_saves_once_per_move(self, make_robot, monkeypatch):
        robot = make_robot(FixedEngine("e2e4"))
        saved = []
        original = robot.state.save
        monkeypatch.setattr(robot.state, "save", lambda board: saved.append(board) or original(board))
        robot.auto_play(1)
        assert len(saved) == 1

    def test_two_moves_without_engine(self, make_robot, sim, fen_path):
        robot = make_robot()
        last = robot.auto_play(2)

        expected = chess.Board()
        for _ in range(2):
            move = next(iter(expected.legal_moves))
            expected.push(move)
        assert last == move.uci()
        assert stored_fen(fen_path) == expected.fen()
        assert sim.count("grasp") == 2
        assert robot.capture.captures == 2

    def test_capture_clears_the_square_first(self, make_robot, sim, fen_path):
        robot = make_robot(FixedEngine("e4d5"), fen=CAPTURE_FEN)
        assert robot.auto_play(1) == "e4d5"

        assert sim.count("grasp") == 2
        assert any(is_discard(pose) for pose in sim.moves())
        board = chess.Board(stored_fen(fen_path))
        assert board.piece_at(chess.D5) == chess.Piece(chess.PAWN, chess.WHITE)
        assert board.piece_at(chess.E4) is None

    def test_castling_refused_before_any_motion(self, make_robot, sim, fen_path):
        robot = make_robot(FixedEngine("e1g1"), fen=CASTLING_FEN)
        sim.calls.clear()

        with pytest.raises(UnsupportedMoveError):
            robot.auto_play(1)

        assert sim.count("grasp") == 0
        assert sim.count("set_gripper_opening") == 0
        assert sim.count("move_to") == 0
        assert robot.capture.captures == 0
        assert stored_fen(fen_path) == CASTLING_FEN

    def test_goes_home_after_success(self, make_robot, sim):
        robot = make_robot(FixedEngine("e2e4"))
        robot.auto_play(1)
        assert sim.calls[-2:] == [("set_staging_position", 2), ("open",)]

    def test_goes_home_after_failure(self, make_robot, sim):
        robot = make_robot(FixedEngine("e1g1"), fen=CASTLING_FEN)
        sim.calls.clear()
        with pytest.raises(UnsupportedMoveError):
            robot.auto_play(1)
        assert sim.calls == [("set_staging_position", 2), ("open",)]

    def test_homing_failure_does_not_hide_error(self, make_robot, sim, caplog):
        robot = make_robot(FixedEngine("e1g1"), fen=CASTLING_FEN)
        sim.homing_fails = True

        with caplog.at_level(logging.WARNING):
            with pytest.raises(UnsupportedMoveError):
                robot.auto_play(1)
        assert "Can't go home" in caplog.text

    def test_failed_grasp_leaves_position_alone(self, make_robot, sim, fen_path):
        robot = make_robot(FixedEngine("e2e4"))
        sim.default_outcome = (True, 5.0)
        with pytest.raises(GraspError):
            robot.auto_play(1)
        assert not os.path.exists(fen_path)
        assert sim.calls[-2:] == [("set_staging_position", 2), ("open",)]

    def test_save_failure_is_reported(self, make_robot, monkeypatch, caplog):
        robot = make_robot(FixedEngine("e2e4"))

        def broken(board):
            raise PersistenceError("disk full")

        monkeypatch.setattr(robot.state, "save", broken)
        with caplog.at_level(logging.ERROR):
            with pytest.raises(PersistenceError):
                robot.auto_play(1)
        assert "not saved" in caplog.text

    def test_needs_at_least_one_move(self, make_robot, sim):
        robot = make_robot(FixedEngine("e2e4"))
        with pytest.raises(CommandError):
            robot.auto_play(0)
        assert sim.count("grasp") == 0


class TestManualMove:
    def test_goes_back_and_forth(self, make_robot, sim, monkeypatch):
        robot = make_robot()
        moves = []
        monkeypatch.setattr(
            robot.executor, "move_piece",
            lambda snapshot, src, dst: moves.append((src, dst)),
        )

        robot.manual_move("e2", "e4", 3)

        assert moves == [("e2", "e4"), ("e4", "e2"), ("e2", "e4")]
        # A fresh look at the board before every move
        assert robot.capture.captures == 3
        # Home before every move, and once more at the end
        assert sim.count("set_staging_position") == 1 + 3 + 1

    def test_single_move(self, make_robot, sim, fen_path):
        robot = make_robot()
        robot.manual_move("e2", "e4")
        assert sim.count("grasp") == 1
        # Calibration moves are not part of the game
        assert not os.path.exists(fen_path)


class TestDoCommand:
    def test_move_command(self, make_robot, monkeypatch):
        robot = make_robot()
        calls = []
        monkeypatch.setattr(robot, "manual_move", lambda *args: calls.append(args))

        assert robot.do_command({"move": {"from": "e2", "to": "e4"}}) == {}
        assert robot.do_command({"move": {"from": "e2", "to": "e4", "n": 4}}) == {}
        assert robot.do_command({"move": {"from": "e2", "to": "e4", "repeat_count": 2}}) == {}
        assert calls == [("e2", "e4", 1), ("e2", "e4", 4), ("e2", "e4", 2)]

    def test_play_command(self, make_robot):
        robot = make_robot(FixedEngine("e2e4"))
        assert robot.do_command({"play": 1}) == {"move": "e2e4"}

    @pytest.mark.parametrize("cmd", [
        "play",
        {},
        {"dance": 1},
        {"play": 0},
        {"play": -2},
        {"play": True},
        {"play": "1"},
        {"move": {"from": "e2"}},
        {"move": "e2e4"},
        {"move": {"from": "e2", "to": "e4", "n": -1}},
        {"move": {"from": "e2", "to": "e4", "n": 1.5}},
        {"move": {"from": "e", "to": "e4"}},
        {"move": {"from": "e2", "to": "e9"}},
        {"move": {"from": "e2", "to": "-"}},
        {"move": {"from": 12, "to": "e4"}},
    ])
    def test_bad_commands(self, make_robot, sim, cmd):
        robot = make_robot(FixedEngine("e2e4"))
        sim.calls.clear()
        with pytest.raises(CommandError):
            robot.do_command(cmd)
        assert sim.count("grasp") == 0


class TestLifecycle:
    def test_homes_on_start(self, make_robot, sim):
        make_robot()
        assert sim.calls == [("set_staging_position", 2), ("open",)]

    def test_missing_collaborators(self, sim, fen_path):
        engine = FixedEngine("e2e4")
        with pytest.raises(ConfigError):
            ChessRobot(
                None, sim.manipulator, sim.gripper, None, sim.homing,
                engine=engine, fen_path=fen_path,
            )
        assert engine.closed
        assert sim.calls == []

    def test_homing_failure_on_start(self, fen_path):
        sim = SimulatedRobot(homing_fails=True)
        engine = FixedEngine("e2e4")
        with pytest.raises(MotionError):
            ChessRobot(
                SimulatedCamera(chess.Board), sim.manipulator, sim.gripper,
                sim.motion, sim.homing, engine=engine, fen_path=fen_path,
                arm_config=FastArmConfig(),
            )
        assert engine.closed

    def test_close_stops_engine(self, make_robot):
        engine = FixedEngine("e2e4")
        with make_robot(engine) as robot:
            assert robot.engine is engine
        assert engine.closed
        assert robot.engine is None
        # Closing twice is fine
        robot.close()

    def test_one_operation_at_a_time(self, make_robot, sim):
        robot = make_robot(FixedEngine("e2e4"))
        results = []

        robot._lock.acquire()
        worker = threading.Thread(target=lambda: results.append(robot.auto_play(1)))
        worker.start()
        try:
            time.sleep(0.2)
            # Still waiting for the operation in progress
            assert worker.is_alive()
            assert sim.count("grasp") == 0
        finally:
            robot._lock.release()
        worker.join(timeout=10)

        assert results == ["e2e4"]
        assert sim.count("grasp") == 1


class TestCommandLine:
    @pytest.fixture(autouse=True)
    def no_delays(self, monkeypatch):
        monkeypatch.setattr(ArmConfig, "GRASP_SETTLE_DELAY", 0.0)
        monkeypatch.setattr(ArmConfig, "HOME_SETTLE_DELAY", 0.0)

    def test_play(self, tmp_path, capsys):
        assert main(["--play", "1", "--no-engine", "--data-dir", str(tmp_path)]) == 0

        board = chess.Board()
        move = next(iter(board.legal_moves))
        assert capsys.readouterr().out.strip() == move.uci()
        board.push(move)
        assert stored_fen(tmp_path / "fen.txt") == board.fen()

    def test_data_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv(RobotConfig.DATA_DIR_ENV, str(tmp_path))
        assert main(["--play", "1", "--no-engine"]) == 0
        assert (tmp_path / "fen.txt").exists()

    def test_manual_move(self, tmp_path):
        assert main(["--move", "e2", "e4", "-n", "1", "--no-engine", "--data-dir", str(tmp_path)]) == 0
        assert not (tmp_path / "fen.txt").exists()

    def test_missing_engine(self, tmp_path):
        args = ["--play", "1", "--engine", str(tmp_path / "no-such-engine"), "--data-dir", str(tmp_path)]
        assert main(args) == 1

    def test_game_over(self, tmp_path):
        GameStateManager(str(tmp_path / "fen.txt")).save(
            chess.Board("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
        )
        assert main(["--play", "1", "--no-engine", "--data-dir", str(tmp_path)]) == 1

    def test_action_is_required(self):
        with pytest.raises(SystemExit):
            main([])

    def test_help_warns_about_simulated_shuttles(self, capsys):
        with pytest.raises(SystemExit):
            main(["--help"])
        assert "unmoved" in capsys.readouterr().out
