import dataclasses

import pytest

from robot_console.models import (
    CartesianPosition, CommandResult, JointLimit, MoveCommand, RobotConfiguration,
    RobotState, joint_vector,
)


def test_robot_state_from_camel_case():
    state = RobotState.from_dict({
        'jointPositions': [1, 2, 3, 4, 5, 6],
        'targetPositions': [0, 0, 0, 0, 0, 0],
        'cartesianPosition': {'x': 100, 'y': 0, 'z': 250, 'roll': 0, 'pitch': 90, 'yaw': 0},
        'isHomed': True,
        'isMoving': False,
        'isConnected': True,
        'emergencyStop': False,
        'status': 'Idle',
        'lastUpdate': '2024-01-01T00:00:00Z',
    })
    assert state.joint_positions == (1.0, 2.0, 3.0, 4.0, 5.0, 6.0)
    assert state.cartesian_position == CartesianPosition(100.0, 0.0, 250.0, 0.0, 90.0, 0.0)
    assert state.is_homed and state.is_connected
    assert state.last_update == '2024-01-01T00:00:00Z'
    assert RobotState.from_dict(state.to_dict()) == state


def test_robot_state_is_immutable():
    state = RobotState.initial()
    with pytest.raises(dataclasses.FrozenInstanceError):
        state.status = "Moving"


def test_evolve_replaces_fields():
    state = RobotState.initial()
    moved = state.evolve(is_moving=True, status="Moving")
    assert moved.is_moving and moved.status == "Moving"
    assert state.status == "Disconnected"


def test_joint_vector_validation():
    with pytest.raises(ValueError):
        joint_vector([1, 2, 3])
    with pytest.raises(ValueError):
        joint_vector([0, 0, 0, 0, 0, float('nan')])


def test_robot_state_rejects_non_object():
    with pytest.raises(ValueError):
        RobotState.from_dict([1, 2, 3])


def test_joint_limit():
    limit = JointLimit("joint2", -42.0, 90.0)
    assert limit.clamp(120) == 90.0
    assert limit.clamp(-50) == -42.0
    assert JointLimit.from_dict(limit.to_dict()) == limit
    with pytest.raises(ValueError):
        JointLimit("bad", 10.0, -10.0)


def test_move_command_omits_unset_fields():
    assert MoveCommand(joint_angles=(0, 10, 20, 0, 0, 0)).to_dict() == {
        'jointAngles': [0.0, 10.0, 20.0, 0.0, 0.0, 0.0],
    }
    full = MoveCommand(cartesian_target=CartesianPosition(x=1), speed=30, wait_for_completion=True)
    assert set(full.to_dict()) == {'cartesianTarget', 'speed', 'waitForCompletion'}


def test_command_result_from_dict():
    result = CommandResult.from_dict({'success': False, 'message': 'E-stop active'})
    assert not result.success
    assert result.message == 'E-stop active'


def test_robot_configuration_from_dict():
    config = RobotConfiguration.from_dict({
        'name': 'Arm6',
        'degreesOfFreedom': 6,
        'dhParameters': [{'jointName': 'joint1', 'a': 0, 'd': 150, 'alpha': 90, 'theta': 0}],
        'jointLimits': [{'jointName': 'joint1', 'minDegrees': -170, 'maxDegrees': 170}],
        'serial': {'portName': '/dev/ttyUSB0', 'baudRate': 57600},
    })
    assert config.name == 'Arm6'
    assert config.dh_parameters[0].d == 150.0
    assert config.joint_limits[0].max_degrees == 170.0
    assert config.serial.baud_rate == 57600
