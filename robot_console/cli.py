#!/usr/bin/env python3
"""
Headless command-line entry point for the robot console.

Runs on a QCoreApplication (no display server required) and prints with rich.

Usage:
    robot-console monitor
    robot-console simulate --demo
    robot-console simulate --preset wave --speed 80
    robot-console command jog --joint 2 --delta -5
    robot-console command estop

Press Ctrl+C to disconnect and exit.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import yaml
from PyQt6.QtCore import QCoreApplication, QTimer
from rich.console import Console
from rich.table import Table

from robot_console import __version__
from robot_console.config import ConsoleConfig
from robot_console.hub.channel import ESTOP_UNREACHABLE_MESSAGE, RobotHubChannel
from robot_console.hub.transport import HubTransport
from robot_console.models import (
    CommandResult, ConnectionState, JogCommand, MoveCommand, NUM_JOINTS, RobotState,
)
from robot_console.simulator.joint_simulator import JointSimulator, SimulatorState
from robot_console.simulator.motion import PRESET_POSES
from robot_console.state import RobotStateStore

LOG_FORMAT = '%(asctime)s - %(filename)s:%(lineno)d - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)
console = Console()


def state_table(state: RobotState, title: str = "Robot State") -> Table:
    """Render joint positions and targets as a rich table."""
    table = Table(title=title)
    table.add_column("Joint", style="cyan")
    table.add_column("Position (deg)", justify="right")
    table.add_column("Target (deg)", justify="right")
    for i in range(NUM_JOINTS):
        table.add_row(
            f"J{i + 1}",
            f"{state.joint_positions[i]:.2f}",
            f"{state.target_positions[i]:.2f}",
        )
    flags = []
    if state.is_connected:
        flags.append("[green]connected[/green]")
    else:
        flags.append("[red]offline[/red]")
    if state.is_moving:
        flags.append("[yellow]moving[/yellow]")
    if state.is_homed:
        flags.append("homed")
    if state.emergency_stop:
        flags.append("[bold red]E-STOP[/bold red]")
    table.caption = f"{state.status} | {' '.join(flags)}"
    return table


def format_result(result) -> str:
    """One-line description of a command outcome."""
    if result is None:
        return "[red]No response from controller[/red]"
    if isinstance(result, CommandResult):
        verdict = "[green]OK[/green]" if result.success else "[red]REJECTED[/red]"
        return f"{verdict} {result.message}".rstrip()
    return f"[green]OK[/green] {result}" if result else f"[red]FAILED[/red] {result}"


# -- Argument parsing ---------------------------------------------------------

def _joint_number(value: str) -> int:
    number = int(value)
    if not 1 <= number <= NUM_JOINTS:
        raise argparse.ArgumentTypeError(f"joint must be 1-{NUM_JOINTS}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="robot-console",
        description="Console for a 6-axis robot arm controller.",
        epilog="Press Ctrl+C to disconnect and exit.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", type=Path, default=None,
        help=f"YAML config file (default: {ConsoleConfig.default_config_path()})",
    )
    parser.add_argument("--hub-url", default=None, help="Override the hub URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="mode", required=True)

    monitor = subparsers.add_parser("monitor", help="Show live robot state")
    monitor.add_argument(
        "--interval", type=float, default=1.0,
        help="Seconds between state tables (default: 1.0)",
    )

    simulate = subparsers.add_parser("simulate", help="Run the joint simulator headless")
    motion = simulate.add_mutually_exclusive_group()
    motion.add_argument("--preset", choices=sorted(PRESET_POSES), help="Move to a preset pose")
    motion.add_argument("--demo", action="store_true", help="Play the demo sequence")
    motion.add_argument(
        "--targets", type=float, nargs=NUM_JOINTS, metavar="DEG",
        help="Move to explicit joint targets (clamped to limits)",
    )
    simulate.add_argument("--speed", type=float, default=None, help="Speed percent (10-100)")
    simulate.add_argument(
        "--no-animate", action="store_true", help="Jump to targets instead of animating",
    )

    command = subparsers.add_parser("command", help="Send one command to the controller")
    actions = command.add_subparsers(dest="action", required=True)
    actions.add_parser("home", help="Home all joints")
    actions.add_parser("stop", help="Stop motion")
    actions.add_parser("estop", help="Emergency stop")
    jog = actions.add_parser("jog", help="Nudge one joint")
    jog.add_argument("--joint", type=_joint_number, required=True, help="Joint number (1-6)")
    jog.add_argument("--delta", type=float, required=True, help="Degrees to move")
    jog.add_argument("--speed", type=float, default=None)
    move = actions.add_parser("move", help="Absolute joint move")
    move.add_argument("joints", type=float, nargs=NUM_JOINTS, metavar="DEG")
    move.add_argument("--speed", type=float, default=None)
    connect_port = actions.add_parser("connect-port", help="Open the controller's serial link")
    connect_port.add_argument("port", help="Serial port name, e.g. /dev/ttyUSB0")
    actions.add_parser("disconnect-port", help="Close the controller's serial link")

    return parser


def load_config(args: argparse.Namespace) -> ConsoleConfig:
    config = ConsoleConfig.load(args.config) if args.config else ConsoleConfig.load_or_default()
    if args.hub_url:
        config.hub_url = args.hub_url
    return config


# -- Modes --------------------------------------------------------------------

def run_monitor(app: QCoreApplication, config: ConsoleConfig, args: argparse.Namespace):
    channel = RobotHubChannel(config, parent=app)
    store = RobotStateStore(app)
    store.bind_channel(channel)
    dirty = False
    stopping = False

    def on_snapshot(_state):
        nonlocal dirty
        dirty = True

    def print_snapshot():
        nonlocal dirty
        if dirty:
            dirty = False
            console.print(state_table(store.snapshot))

    def on_connection_state(state: ConnectionState):
        console.print(f"[dim]connection: {state.value}[/dim]")
        if state == ConnectionState.DISCONNECTED and not stopping:
            app.exit(1)

    def on_connected(ok):
        if not ok:
            app.exit(1)

    def shutdown():
        nonlocal stopping
        stopping = True
        channel.disconnect()
        app.exit(0)

    store.snapshot_changed.connect(on_snapshot)
    store.status_changed.connect(lambda message: console.print(f"[bold]{message}[/bold]"))
    channel.connection_state_changed.connect(on_connection_state)

    table_timer = QTimer(app)
    table_timer.timeout.connect(print_snapshot)
    table_timer.start(int(args.interval * 1000))

    console.print(f"Connecting to {config.hub_url} ...")
    channel.connect().add_done_callback(on_connected)
    return shutdown


def run_simulate(app: QCoreApplication, config: ConsoleConfig, args: argparse.Namespace):
    simulator = JointSimulator(config.joint_limits, config.simulator, parent=app)
    if args.speed is not None:
        simulator.set_speed(args.speed)
    if args.no_animate:
        simulator.set_animate(False)

    def finish(state: Optional[SimulatorState] = None):
        simulator.stop()
        console.print(state_table(
            (state or simulator.snapshot).to_robot_state(), title="Simulated Arm"))
        app.exit(0)

    def on_state(state: SimulatorState):
        if not args.demo and not state.is_moving:
            finish(state)

    simulator.preset_activated.connect(lambda name: console.print(f"[cyan]preset:[/cyan] {name}"))
    simulator.state_changed.connect(on_state)
    simulator.demo_finished.connect(finish)

    if args.demo:
        simulator.run_demo()
    elif args.preset:
        simulator.apply_preset(args.preset)
    elif args.targets:
        simulator.set_targets(args.targets)
    simulator.start()
    return simulator.stop


def run_command(app: QCoreApplication, config: ConsoleConfig, args: argparse.Namespace,
                transport: Optional[HubTransport] = None):
    channel = RobotHubChannel(config, transport=transport, parent=app)

    def issue():
        if args.action == "home":
            return channel.home()
        if args.action == "stop":
            return channel.stop()
        if args.action == "estop":
            return channel.emergency_stop()
        if args.action == "jog":
            return channel.jog(JogCommand(args.joint - 1, args.delta, args.speed))
        if args.action == "move":
            return channel.move(MoveCommand(joint_angles=tuple(args.joints), speed=args.speed))
        if args.action == "connect-port":
            return channel.connect_robot(args.port)
        return channel.disconnect_robot()

    def on_result(result):
        console.print(f"{args.action}: {format_result(result)}")
        channel.disconnect()
        ok = result is not None and getattr(result, 'success', bool(result))
        app.exit(0 if ok else 1)

    def on_connected(ok):
        if not ok:
            console.print(f"[red]Could not connect to {config.hub_url}[/red]")
            if args.action == "estop":
                # Fails fast, but reports the undelivered stop on status_message
                channel.emergency_stop()
            app.exit(1)
            return
        issue().add_done_callback(on_result)

    def on_status(message: str):
        if message == ESTOP_UNREACHABLE_MESSAGE:
            console.print(f"[bold red]{message}[/bold red]")
        else:
            console.print(f"[bold]{message}[/bold]")

    def on_error(error: dict):
        if not error.get('emergencyStop'):
            console.print(f"[red]Error: {error.get('message')}[/red]")

    channel.status_message.connect(on_status)
    channel.error_occurred.connect(on_error)
    channel.connect().add_done_callback(on_connected)
    return channel.disconnect


MODES = {
    "monitor": run_monitor,
    "simulate": run_simulate,
    "command": run_command,
}


def main(argv=None):
    """Main entry point for the robot-console CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    try:
        config = load_config(args)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        print(f"Error: could not load config: {e}", file=sys.stderr)
        sys.exit(2)

    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName("Robot Console")

    shutdown = MODES[args.mode](app, config, args)

    # --- Signal handling (Ctrl+C) ---
    def sigint_handler(signum, frame):
        def _stop():
            console.print("\nStopping...")
            shutdown()
            app.exit(0)
        QTimer.singleShot(0, _stop)

    signal.signal(signal.SIGINT, sigint_handler)

    # Qt needs a timer to process Python signals (SIGINT won't interrupt C++ event loop)
    signal_timer = QTimer()
    signal_timer.timeout.connect(lambda: None)
    signal_timer.start(200)

    sys.exit(app.exec())


if __name__ == '__main__':
    main()
