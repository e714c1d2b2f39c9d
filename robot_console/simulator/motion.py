"""
Joint-space motion rules for the simulator.

Pure functions with no Qt or I/O so the motion law can be checked tick by tick.
"""

from typing import Dict, Sequence, Tuple

from robot_console.models import JointLimit, JointVector, joint_vector

# Distance (degrees) under which a joint counts as arrived
ARRIVAL_TOLERANCE_DEG = 0.1

# Speed at which a step covers exactly 1/10 of the remaining distance
REFERENCE_SPEED_PERCENT = 50.0
STEP_FRACTION = 0.1

MIN_SPEED_PERCENT = 10.0
MAX_SPEED_PERCENT = 100.0

PRESET_POSES: Dict[str, JointVector] = {
    'home': (0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
    'wave': (45.0, 30.0, -45.0, 0.0, 60.0, 0.0),
    'reach': (0.0, 60.0, -30.0, 0.0, 45.0, 0.0),
    'pick': (90.0, 45.0, -60.0, 0.0, 90.0, 0.0),
    'place': (-90.0, 45.0, -60.0, 0.0, 90.0, 180.0),
}

DEMO_SEQUENCE: Tuple[str, ...] = ('home', 'wave', 'reach', 'pick', 'place', 'home')


def clamp_speed(speed_percent: float) -> float:
    return max(MIN_SPEED_PERCENT, min(MAX_SPEED_PERCENT, float(speed_percent)))


def clamp_targets(targets: Sequence[float], limits: Sequence[JointLimit]) -> JointVector:
    """Clamp every entry of a target vector into its joint's range."""
    return joint_vector(limit.clamp(value) for value, limit in zip(targets, limits))


def step_joint(current: float, target: float, speed_percent: float) -> float:
    """
    Advance one joint by one tick.

    The step is a fixed fraction of the remaining distance (first-order
    approach), scaled by speed. A joint within ARRIVAL_TOLERANCE_DEG of its
    target lands exactly on it.
    """
    diff = target - current
    if abs(diff) < ARRIVAL_TOLERANCE_DEG:
        return target
    position = current + diff * STEP_FRACTION * (speed_percent / REFERENCE_SPEED_PERCENT)
    if abs(target - position) < ARRIVAL_TOLERANCE_DEG:
        return target
    return position


def is_moving(current: Sequence[float], target: Sequence[float]) -> bool:
    """True while any joint is further than the arrival tolerance from its target."""
    return any(abs(c - t) > ARRIVAL_TOLERANCE_DEG for c, t in zip(current, target))


def step_joints(current: Sequence[float], target: Sequence[float],
                speed_percent: float) -> Tuple[JointVector, bool]:
    """
    Advance all joints by one tick.

    Returns:
        (new positions, moving flag after the step)
    """
    positions = joint_vector(step_joint(c, t, speed_percent) for c, t in zip(current, target))
    return positions, is_moving(positions, target)
