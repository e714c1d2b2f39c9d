from robot_console.hub import protocol
from robot_console.simulator.joint_simulator import JointSimulator
from robot_console.state import OFFLINE_STATUS, RobotStateStore


def push_state(transport, positions, status="Idle"):
    transport.push({
        'type': protocol.MessageType.INVOCATION,
        'target': 'StateUpdate',
        'arguments': [{
            'jointPositions': positions,
            'targetPositions': positions,
            'isConnected': True,
            'status': status,
        }],
    })


def test_starts_with_initial_state():
    store = RobotStateStore()
    assert store.snapshot.joint_positions == (0.0,) * 6
    assert not store.snapshot.is_connected
    assert store.status == "Ready"


def test_binding_disconnected_channel_publishes_offline(channel):
    store = RobotStateStore()
    store.bind_channel(channel)
    assert store.snapshot.status == OFFLINE_STATUS
    assert not store.snapshot.is_connected


def test_state_updates_replace_snapshot(connected_channel, transport):
    store = RobotStateStore()
    published = []
    store.snapshot_changed.connect(published.append)
    store.bind_channel(connected_channel)

    push_state(transport, [1, 2, 3, 4, 5, 6])
    push_state(transport, [2, 3, 4, 5, 6, 7], status="Moving")

    assert len(published) == 2
    assert store.snapshot is published[-1]
    assert store.snapshot.joint_positions == (2.0, 3.0, 4.0, 5.0, 6.0, 7.0)
    assert store.snapshot.status == "Moving"


def test_connection_loss_publishes_offline_snapshot(connected_channel, transport):
    store = RobotStateStore()
    store.bind_channel(connected_channel)
    push_state(transport, [10, 0, 0, 0, 0, 0])
    assert store.snapshot.is_connected

    transport.drop()

    assert not store.snapshot.is_connected
    assert store.snapshot.status == OFFLINE_STATUS
    assert store.snapshot.joint_positions[0] == 10.0


def test_status_and_errors_update_status_line(connected_channel, transport):
    store = RobotStateStore()
    statuses = []
    store.status_changed.connect(statuses.append)
    store.bind_channel(connected_channel)

    transport.push({'type': 1, 'target': 'StatusMessage', 'arguments': ["Homing"]})
    transport.push({'type': 1, 'target': 'Error', 'arguments': [{'message': "Overcurrent"}]})

    assert statuses == ["Homing", "Error: Overcurrent"]
    assert store.status == "Error: Overcurrent"


def test_only_bound_source_is_accepted(connected_channel, transport):
    store = RobotStateStore()
    store.bind_channel(connected_channel)
    simulator = JointSimulator()
    store.bind_simulator(simulator)

    push_state(transport, [50, 0, 0, 0, 0, 0])
    assert store.snapshot.joint_positions[0] == 0.0

    simulator.apply_preset('wave')
    simulator.tick()
    assert store.snapshot.target_positions[0] == 45.0
    assert store.source is simulator


def test_unbind_keeps_last_snapshot():
    store = RobotStateStore()
    simulator = JointSimulator()
    store.bind_simulator(simulator)
    simulator.set_animate(False)
    simulator.apply_preset('reach')
    simulator.tick()
    last = store.snapshot

    store.unbind()
    simulator.apply_preset('pick')
    simulator.tick()

    assert store.snapshot is last
    assert store.source is None
