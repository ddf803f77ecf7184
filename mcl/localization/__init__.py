"""
Localization runtime: configuration, collaborator interfaces and the
estimation cycle driver.

Main components:
    - LocalizationConfig, load_config: validated configuration tree
    - TransformListener, TransformBroadcaster, ParticlePublisher: protocols
      for the external services
    - TransformBuffer, RecordingPublisher: in-memory implementations
    - LocalizationCycle: one predict → weight → resample → estimate pass
      per laser scan
"""

from .config import (
    InitialPoseConfig,
    LaserModelConfig,
    LocalizationConfig,
    OdomModelConfig,
    load_config,
)
from .cycle import CycleResult, CycleStatus, LocalizationCycle
from .interfaces import (
    MessageQueue,
    ParticlePublisher,
    RecordingPublisher,
    TransformBroadcaster,
    TransformBuffer,
    TransformListener,
    TransformUnavailableError,
)

__all__ = [
    # Configuration
    "LocalizationConfig",
    "OdomModelConfig",
    "LaserModelConfig",
    "InitialPoseConfig",
    "load_config",
    # Interfaces
    "TransformListener",
    "TransformBroadcaster",
    "ParticlePublisher",
    "TransformUnavailableError",
    "TransformBuffer",
    "RecordingPublisher",
    "MessageQueue",
    # Driver
    "LocalizationCycle",
    "CycleResult",
    "CycleStatus",
]
