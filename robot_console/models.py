"""
Data models shared by the telemetry channel, the simulator and the state store.

All models are frozen dataclasses: a RobotState is replaced wholesale on every
telemetry push or simulator tick, never mutated in place. Each model converts
to and from the camelCase JSON used on the controller hub.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

# Degrees of freedom of the arm
NUM_JOINTS = 6

JointVector = Tuple[float, ...]


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp, as the controller formats lastUpdate."""
    return datetime.now(timezone.utc).isoformat()


def joint_vector(values: Iterable[float]) -> JointVector:
    """
    Build a validated JointVector.

    Raises:
        ValueError: if the vector does not hold exactly NUM_JOINTS finite numbers.
    """
    vector = tuple(float(v) for v in values)
    if len(vector) != NUM_JOINTS:
        raise ValueError(f"Joint vector must have {NUM_JOINTS} entries, got {len(vector)}")
    if any(math.isnan(v) for v in vector):
        raise ValueError("Joint vector contains NaN")
    return vector


ZERO_JOINTS: JointVector = (0.0,) * NUM_JOINTS


class ConnectionState(Enum):
    """Lifecycle of the hub connection. Owned by RobotHubChannel."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERRORED = "errored"


@dataclass(frozen=True)
class CartesianPosition:
    """Tool pose: position in mm, orientation in degrees."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0

    def to_dict(self) -> dict:
        return {
            'x': self.x, 'y': self.y, 'z': self.z,
            'roll': self.roll, 'pitch': self.pitch, 'yaw': self.yaw,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CartesianPosition':
        return cls(**{k: float(data.get(k, 0.0)) for k in ('x', 'y', 'z', 'roll', 'pitch', 'yaw')})


@dataclass(frozen=True)
class JointLimit:
    """Motion limits for a single joint."""
    joint_name: str = ""
    min_degrees: float = -180.0
    max_degrees: float = 180.0
    max_speed: float = 90.0  # deg/s
    max_acceleration: float = 180.0  # deg/s^2

    def __post_init__(self):
        if self.min_degrees > self.max_degrees:
            raise ValueError(
                f"{self.joint_name or 'joint'}: min_degrees ({self.min_degrees}) "
                f"must be <= max_degrees ({self.max_degrees})")

    def clamp(self, degrees: float) -> float:
        """Clamp an angle into [min_degrees, max_degrees]."""
        return max(self.min_degrees, min(self.max_degrees, degrees))

    def to_dict(self) -> dict:
        return {
            'jointName': self.joint_name,
            'minDegrees': self.min_degrees,
            'maxDegrees': self.max_degrees,
            'maxSpeed': self.max_speed,
            'maxAcceleration': self.max_acceleration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'JointLimit':
        return cls(
            joint_name=data.get('jointName', ''),
            min_degrees=float(data.get('minDegrees', -180.0)),
            max_degrees=float(data.get('maxDegrees', 180.0)),
            max_speed=float(data.get('maxSpeed', 90.0)),
            max_acceleration=float(data.get('maxAcceleration', 180.0)),
        )


@dataclass(frozen=True)
class RobotState:
    """Complete mirrored robot state."""
    joint_positions: JointVector = ZERO_JOINTS
    target_positions: JointVector = ZERO_JOINTS
    cartesian_position: Optional[CartesianPosition] = None
    is_homed: bool = False
    is_moving: bool = False
    is_connected: bool = False
    emergency_stop: bool = False
    status: str = "Disconnected"
    last_update: str = field(default_factory=utc_timestamp)

    def __post_init__(self):
        # Normalise lists into validated tuples so snapshots stay immutable
        object.__setattr__(self, 'joint_positions', joint_vector(self.joint_positions))
        object.__setattr__(self, 'target_positions', joint_vector(self.target_positions))

    @classmethod
    def initial(cls) -> 'RobotState':
        """State shown before any telemetry has arrived."""
        return cls()

    def evolve(self, **changes) -> 'RobotState':
        """Return a copy with the given fields replaced and a fresh timestamp."""
        changes.setdefault('last_update', utc_timestamp())
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            'jointPositions': list(self.joint_positions),
            'targetPositions': list(self.target_positions),
            'cartesianPosition': (
                self.cartesian_position.to_dict() if self.cartesian_position else None),
            'isHomed': self.is_homed,
            'isMoving': self.is_moving,
            'isConnected': self.is_connected,
            'emergencyStop': self.emergency_stop,
            'status': self.status,
            'lastUpdate': self.last_update,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'RobotState':
        """
        Build a RobotState from a hub StateUpdate payload.

        Raises:
            ValueError: if the joint vectors are malformed.
        """
        if not isinstance(data, dict):
            raise ValueError(f"RobotState payload must be an object, got {type(data).__name__}")
        cartesian = data.get('cartesianPosition')
        return cls(
            joint_positions=data.get('jointPositions', ZERO_JOINTS),
            target_positions=data.get('targetPositions', ZERO_JOINTS),
            cartesian_position=CartesianPosition.from_dict(cartesian) if cartesian else None,
            is_homed=bool(data.get('isHomed', False)),
            is_moving=bool(data.get('isMoving', False)),
            is_connected=bool(data.get('isConnected', False)),
            emergency_stop=bool(data.get('emergencyStop', False)),
            status=str(data.get('status', "")),
            last_update=str(data.get('lastUpdate') or utc_timestamp()),
        )


@dataclass(frozen=True)
class MoveCommand:
    """Absolute move in joint space or to a cartesian target."""
    joint_angles: Optional[JointVector] = None
    cartesian_target: Optional[CartesianPosition] = None
    speed: Optional[float] = None
    wait_for_completion: Optional[bool] = None

    def __post_init__(self):
        if self.joint_angles is not None:
            object.__setattr__(self, 'joint_angles', joint_vector(self.joint_angles))

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {}
        if self.joint_angles is not None:
            data['jointAngles'] = list(self.joint_angles)
        if self.cartesian_target is not None:
            data['cartesianTarget'] = self.cartesian_target.to_dict()
        if self.speed is not None:
            data['speed'] = self.speed
        if self.wait_for_completion is not None:
            data['waitForCompletion'] = self.wait_for_completion
        return data


@dataclass(frozen=True)
class JogCommand:
    """Incremental nudge of a single joint."""
    joint_index: int
    delta_degrees: float
    speed: Optional[float] = None

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            'jointIndex': self.joint_index,
            'deltaDegrees': self.delta_degrees,
        }
        if self.speed is not None:
            data['speed'] = self.speed
        return data


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command, as reported by the controller."""
    success: bool
    message: str = ""
    data: Any = None
    timestamp: str = field(default_factory=utc_timestamp)

    @classmethod
    def from_dict(cls, data: dict) -> 'CommandResult':
        if not isinstance(data, dict):
            raise ValueError(f"CommandResult payload must be an object, got {type(data).__name__}")
        return cls(
            success=bool(data.get('success', False)),
            message=str(data.get('message', "")),
            data=data.get('data'),
            timestamp=str(data.get('timestamp') or utc_timestamp()),
        )


@dataclass(frozen=True)
class DHParameter:
    """Denavit-Hartenberg row for one joint."""
    joint_name: str
    a: float
    d: float
    alpha: float
    theta: float

    @classmethod
    def from_dict(cls, data: dict) -> 'DHParameter':
        return cls(
            joint_name=data.get('jointName', ''),
            a=float(data.get('a', 0.0)),
            d=float(data.get('d', 0.0)),
            alpha=float(data.get('alpha', 0.0)),
            theta=float(data.get('theta', 0.0)),
        )


@dataclass(frozen=True)
class SerialConfiguration:
    """Serial link settings between controller and arm."""
    port_name: str = ""
    baud_rate: int = 115200
    read_timeout: int = 1000
    write_timeout: int = 1000

    @classmethod
    def from_dict(cls, data: dict) -> 'SerialConfiguration':
        return cls(
            port_name=data.get('portName', ''),
            baud_rate=int(data.get('baudRate', 115200)),
            read_timeout=int(data.get('readTimeout', 1000)),
            write_timeout=int(data.get('writeTimeout', 1000)),
        )


@dataclass(frozen=True)
class RobotConfiguration:
    """Robot description served by the controller's /configuration endpoint."""
    name: str
    degrees_of_freedom: int = NUM_JOINTS
    dh_parameters: Tuple[DHParameter, ...] = ()
    joint_limits: Tuple[JointLimit, ...] = ()
    serial: SerialConfiguration = field(default_factory=SerialConfiguration)

    @classmethod
    def from_dict(cls, data: dict) -> 'RobotConfiguration':
        return cls(
            name=data.get('name', ''),
            degrees_of_freedom=int(data.get('degreesOfFreedom', NUM_JOINTS)),
            dh_parameters=tuple(DHParameter.from_dict(d) for d in data.get('dhParameters', [])),
            joint_limits=tuple(JointLimit.from_dict(j) for j in data.get('jointLimits', [])),
            serial=SerialConfiguration.from_dict(data.get('serial') or {}),
        )


def limits_from_list(limits: List[dict]) -> List[JointLimit]:
    """Convert a list of camelCase limit dicts into JointLimit objects."""
    return [JointLimit.from_dict(item) for item in limits]
