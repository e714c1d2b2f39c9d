"""Joint motion simulator: pure motion rules and the timer-driven JointSimulator."""

from .joint_simulator import JointSimulator, SimulatorState
from .motion import DEMO_SEQUENCE, PRESET_POSES, step_joints

__all__ = [
    'DEMO_SEQUENCE',
    'JointSimulator',
    'PRESET_POSES',
    'SimulatorState',
    'step_joints',
]
