"""
Configuration module for the Robot Console.

Defines dataclasses for the hub connection, reconnect schedule, simulator
and joint limits, with YAML support.
"""

import yaml
from dataclasses import dataclass, field, asdict
from typing import List, Optional
from pathlib import Path

from robot_console.models import JointLimit, NUM_JOINTS


# Joint limits of the simulated arm (degrees)
DEFAULT_JOINT_LIMITS = [
    JointLimit(joint_name="joint1", min_degrees=-170.0, max_degrees=170.0),
    JointLimit(joint_name="joint2", min_degrees=-42.0, max_degrees=90.0),
    JointLimit(joint_name="joint3", min_degrees=-89.0, max_degrees=52.0),
    JointLimit(joint_name="joint4", min_degrees=-165.0, max_degrees=165.0),
    JointLimit(joint_name="joint5", min_degrees=-105.0, max_degrees=105.0),
    JointLimit(joint_name="joint6", min_degrees=-155.0, max_degrees=155.0),
]


@dataclass
class ReconnectConfig:
    """Automatic reconnect schedule after an unexpected connection loss."""
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    max_attempts: int = 4

    def __post_init__(self):
        if self.base_delay_ms <= 0 or self.max_delay_ms <= 0:
            raise ValueError("Reconnect delays must be positive")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")


@dataclass
class SimulatorConfig:
    """Joint motion simulator settings."""
    tick_hz: float = 20.0
    speed_percent: float = 50.0
    animate: bool = True
    demo_hold_ms: int = 2000

    def __post_init__(self):
        if self.tick_hz <= 0:
            raise ValueError("tick_hz must be positive")

    @property
    def tick_interval_ms(self) -> int:
        """Timer interval for one simulation step."""
        return int(round(1000.0 / self.tick_hz))


@dataclass
class ConsoleConfig:
    """Main console configuration."""
    hub_url: str = "http://localhost:5132/hubs/robot"
    api_base_url: str = "http://localhost:5132/api"
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    invoke_timeout_ms: int = 30000
    keep_alive_interval_ms: int = 15000
    server_timeout_ms: int = 30000
    simulator: SimulatorConfig = field(default_factory=SimulatorConfig)
    joint_limits: List[JointLimit] = field(default_factory=lambda: list(DEFAULT_JOINT_LIMITS))

    def __post_init__(self):
        # Convert nested dicts (from YAML) into their dataclasses
        if isinstance(self.reconnect, dict):
            self.reconnect = ReconnectConfig(**self.reconnect)
        if isinstance(self.simulator, dict):
            self.simulator = SimulatorConfig(**self.simulator)
        if self.joint_limits and isinstance(self.joint_limits[0], dict):
            self.joint_limits = [JointLimit(**j) for j in self.joint_limits]
        if len(self.joint_limits) != NUM_JOINTS:
            raise ValueError(
                f"Expected {NUM_JOINTS} joint limits, got {len(self.joint_limits)}")

    def get_limit(self, index: int) -> JointLimit:
        """Get the limit for a joint by index."""
        return self.joint_limits[index]

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        data = {
            'hub_url': self.hub_url,
            'api_base_url': self.api_base_url,
            'reconnect': asdict(self.reconnect),
            'invoke_timeout_ms': self.invoke_timeout_ms,
            'keep_alive_interval_ms': self.keep_alive_interval_ms,
            'server_timeout_ms': self.server_timeout_ms,
            'simulator': asdict(self.simulator),
            'joint_limits': [asdict(j) for j in self.joint_limits],
        }
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    def save(self, path: Path):
        """Save config to YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            f.write(self.to_yaml())

    @classmethod
    def from_yaml(cls, yaml_str: str) -> 'ConsoleConfig':
        """Load config from YAML string."""
        data = yaml.safe_load(yaml_str) or {}
        return cls(**data)

    @classmethod
    def load(cls, path: Path) -> 'ConsoleConfig':
        """Load config from YAML file."""
        with open(path, 'r') as f:
            return cls.from_yaml(f.read())

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> 'ConsoleConfig':
        """Load config from path (or the default location), falling back to defaults if missing."""
        path = path or cls.default_config_path()
        if not path.exists():
            return cls()
        return cls.load(path)

    @classmethod
    def default_config_path(cls) -> Path:
        """Get default config path."""
        return Path.home() / '.config' / 'robot_console' / 'console_config.yaml'
