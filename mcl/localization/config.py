"""Configuration for the localization cycle.

The configuration tree mirrors the groups of the localization plugin
configuration file:

    {
        "num_particles": 500,
        "initial_pose_topic": "initialpose",
        "initial_pose": {"x": 0.0, "y": 0.0, "rz": 0.0},
        "odom_model": {"map_frame": "map", "odom_frame": "odom",
                       "base_link_frame": "base_link",
                       "alpha1": 0.05, "alpha2": 0.05, "alpha3": 0.05, "alpha4": 0.05},
        "laser_model": {"topic": "scan", "z_hit": 0.95, "sigma_hit": 0.2, ...}
    }

`odom_model` and `laser_model` are required; everything else has a default.
Values are validated in __post_init__, so a bad file fails at load time
rather than in the middle of a cycle.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union


def _check_keys(cls, data: Dict[str, Any], group: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown key(s) in '{group}': {sorted(unknown)}")


@dataclass
class OdomModelConfig:
    """
    Frames and motion-noise coefficients.

    Attributes:
        map_frame: Frame the particles live in.
        odom_frame: Frame of the odometry source.
        base_link_frame: Robot body frame.
        alpha1: Rotation noise per radian of rotation.
        alpha2: Rotation noise per meter of translation.
        alpha3: Translation noise per meter of translation.
        alpha4: Translation noise per radian of rotation.
    """

    map_frame: str = "map"
    odom_frame: str = "odom"
    base_link_frame: str = "base_link"
    alpha1: float = 0.05
    alpha2: float = 0.05
    alpha3: float = 0.05
    alpha4: float = 0.05

    def __post_init__(self) -> None:
        """Validate frame names and noise coefficients."""
        for name in ("map_frame", "odom_frame", "base_link_frame"):
            if not getattr(self, name):
                raise ValueError(f"odom_model.{name} must be a non-empty string")
        for name in ("alpha1", "alpha2", "alpha3", "alpha4"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValueError(f"odom_model.{name} must be a non-negative number, got {value}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OdomModelConfig":
        _check_keys(cls, data, "odom_model")
        return cls(**data)


@dataclass
class LaserModelConfig:
    """
    Laser topic and beam-model likelihood parameters.

    Attributes:
        topic: Scan topic to subscribe to.
        z_hit, z_short, z_max, z_rand: Mixture weights.
        sigma_hit: Hit-term standard deviation (meters).
        lambda_short: Short-reading rate (1/meters).
        range_max: Maximum range override (meters); None uses the scan's.
        beam_step: Evaluate every beam_step-th beam.
        num_threads: Worker threads for the weight update.
        chunk_size: Particles per work unit.
    """

    topic: str = "scan"
    z_hit: float = 0.95
    z_short: float = 0.1
    z_max: float = 0.05
    z_rand: float = 0.05
    sigma_hit: float = 0.2
    lambda_short: float = 0.1
    range_max: Optional[float] = None
    beam_step: int = 4
    num_threads: int = 1
    chunk_size: int = 256

    def __post_init__(self) -> None:
        """Validate likelihood parameters."""
        if not self.topic:
            raise ValueError("laser_model.topic must be a non-empty string")
        for name in ("z_hit", "z_short", "z_max", "z_rand"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValueError(f"laser_model.{name} must be a non-negative number, got {value}")
        if self.sigma_hit <= 0:
            raise ValueError(f"laser_model.sigma_hit must be positive, got {self.sigma_hit}")
        if self.lambda_short <= 0:
            raise ValueError(f"laser_model.lambda_short must be positive, got {self.lambda_short}")
        if self.range_max is not None and self.range_max <= 0:
            raise ValueError(f"laser_model.range_max must be positive, got {self.range_max}")
        for name in ("beam_step", "num_threads", "chunk_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"laser_model.{name} must be an integer >= 1, got {value}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LaserModelConfig":
        _check_keys(cls, data, "laser_model")
        return cls(**data)


@dataclass
class InitialPoseConfig:
    """Initial robot pose in the map frame (yaw in radians)."""

    x: float = 0.0
    y: float = 0.0
    yaw: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InitialPoseConfig":
        data = dict(data)
        # The plugin configuration calls the heading "rz"
        if "rz" in data:
            if "yaw" in data:
                raise ValueError("initial_pose: give either 'rz' or 'yaw', not both")
            data["yaw"] = data.pop("rz")
        _check_keys(cls, data, "initial_pose")
        return cls(**data)


@dataclass
class LocalizationConfig:
    """
    Root configuration of the localization cycle.

    Attributes:
        odom_model: Frames and motion noise.
        laser_model: Laser topic and likelihood parameters.
        num_particles: Population size after every resampling step.
        initial_pose_topic: Topic for "set pose" requests (None: no topic).
        initial_pose: Pose to initialize around at start-up (None: start
            uninitialized).
        reset_xy_extent: Half-width of the position box used when
            initializing around a pose (meters).
        reset_xy_resolution: Position lattice spacing for that box (meters).
        reset_yaw_extent: Half-width of the heading range (radians).
        reset_yaw_resolution: Heading lattice spacing (radians).
        transform_timeout: Bounded wait for transform lookups (seconds).
        particles_topic: Topic the particle population is published on.
        publish_particles: Publish the population every cycle.
    """

    odom_model: OdomModelConfig = field(default_factory=OdomModelConfig)
    laser_model: LaserModelConfig = field(default_factory=LaserModelConfig)
    num_particles: int = 500
    initial_pose_topic: Optional[str] = None
    initial_pose: Optional[InitialPoseConfig] = None
    reset_xy_extent: float = 0.3
    reset_xy_resolution: float = 0.05
    reset_yaw_extent: float = 0.1
    reset_yaw_resolution: float = 0.05
    transform_timeout: float = 1.0
    particles_topic: str = "ed/localization/particles"
    publish_particles: bool = True

    def __post_init__(self) -> None:
        """Validate population size and reset box."""
        n = self.num_particles
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise ValueError(f"num_particles must be an integer >= 1, got {self.num_particles}")
        for name in ("reset_xy_extent", "reset_yaw_extent"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        for name in ("reset_xy_resolution", "reset_yaw_resolution", "transform_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalizationConfig":
        """
        Build the configuration tree from nested dictionaries.

        Raises:
            ValueError: If a required group is missing, a key is unknown or
                a value is out of range.
        """
        data = dict(data)
        for group in ("odom_model", "laser_model"):
            if group not in data:
                raise ValueError(f"Missing required group '{group}'")
        _check_keys(cls, data, "root")

        data["odom_model"] = OdomModelConfig.from_dict(data["odom_model"])
        data["laser_model"] = LaserModelConfig.from_dict(data["laser_model"])
        if data.get("initial_pose") is not None:
            data["initial_pose"] = InitialPoseConfig.from_dict(data["initial_pose"])
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dictionary form, suitable for json.dump()."""
        return asdict(self)


def load_config(path: Union[str, Path]) -> LocalizationConfig:
    """
    Load a LocalizationConfig from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or the content is invalid.
    """
    path = Path(path)
    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed configuration file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root in {path} must be an object")
    return LocalizationConfig.from_dict(data)
