import io

import pytest
from rich.console import Console

from robot_console import cli
from robot_console.cli import build_parser, format_result, load_config, run_command, state_table
from robot_console.config import ConsoleConfig
from robot_console.hub.channel import ESTOP_UNREACHABLE_MESSAGE
from robot_console.models import CommandResult, RobotState


def test_simulate_arguments():
    args = build_parser().parse_args(['simulate', '--preset', 'wave', '--speed', '80', '--no-animate'])
    assert args.mode == 'simulate'
    assert args.preset == 'wave'
    assert args.speed == 80.0
    assert args.no_animate


def test_preset_and_demo_are_exclusive():
    with pytest.raises(SystemExit):
        build_parser().parse_args(['simulate', '--preset', 'wave', '--demo'])


def test_jog_arguments():
    args = build_parser().parse_args(['command', 'jog', '--joint', '3', '--delta', '-2.5'])
    assert args.action == 'jog'
    assert args.joint == 3
    assert args.delta == -2.5


def test_jog_joint_out_of_range():
    with pytest.raises(SystemExit):
        build_parser().parse_args(['command', 'jog', '--joint', '7', '--delta', '1'])


def test_move_needs_six_angles():
    args = build_parser().parse_args(['command', 'move', '0', '10', '20', '0', '0', '0'])
    assert args.joints == [0.0, 10.0, 20.0, 0.0, 0.0, 0.0]
    with pytest.raises(SystemExit):
        build_parser().parse_args(['command', 'move', '0', '10'])


def test_hub_url_override(tmp_path):
    args = build_parser().parse_args(
        ['--config', str(tmp_path / 'console_config.yaml'), '--hub-url', 'http://arm:5132/hubs/robot', 'monitor'])
    (tmp_path / 'console_config.yaml').write_text("invoke_timeout_ms: 1000\n")
    config = load_config(args)
    assert config.hub_url == 'http://arm:5132/hubs/robot'
    assert config.invoke_timeout_ms == 1000


def test_state_table_has_a_row_per_joint():
    table = state_table(RobotState(status="Idle"))
    assert table.row_count == 6
    assert "Idle" in table.caption


def test_format_result():
    assert "OK" in format_result(CommandResult(True, "Homed"))
    assert "REJECTED" in format_result(CommandResult(False, "Limit"))
    assert "No response" in format_result(None)


@pytest.fixture
def output(monkeypatch):
    buffer = io.StringIO()
    monkeypatch.setattr(cli, 'console', Console(file=buffer, width=200))
    return buffer


def test_estop_with_unreachable_hub_is_flagged(qapp, transport, output):
    args = build_parser().parse_args(['command', 'estop'])
    run_command(qapp, ConsoleConfig(), args, transport=transport)

    transport.drop("connection refused")

    text = output.getvalue()
    assert "Could not connect" in text
    assert ESTOP_UNREACHABLE_MESSAGE in text
    assert transport.sent == []


def test_other_commands_with_unreachable_hub_are_not_flagged(qapp, transport, output):
    args = build_parser().parse_args(['command', 'home'])
    run_command(qapp, ConsoleConfig(), args, transport=transport)

    transport.drop("connection refused")

    text = output.getvalue()
    assert "Could not connect" in text
    assert ESTOP_UNREACHABLE_MESSAGE not in text
