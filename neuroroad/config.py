"""
config.py
=========
Named tuning constants and the :class:`SimConfig` bag that the simulation
is built from. Everything here is import-safe; this module never imports
other project modules except :mod:`neuroroad.errors`.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from .errors import ConfigurationError

# ---------------- WINDOW ----------------
WIDTH, HEIGHT = 1080, 800
TARGET_FPS = 60
CAMERA_ANCHOR = 0.7  # Best car is kept at 70% of the window height

# ---------------- CAR -------------------
SPRITE_WIDTH, SPRITE_HEIGHT = 194, 380
CAR_SCALE = 0.3
MAX_VELOCITY = 10.0
ACCELERATION = 0.4
FRICTION = 0.08
# Below half of max velocity acceleration is divided by this
LOW_SPEED_ACCEL_DIVISOR = 1.6
STEER_RATE = 1.5  # degrees per nominal frame
STEER_MIN_VELOCITY = 0.0

# Hitbox silhouette as (x, y) fractions of the half width / half height,
# clockwise from the front-left corner, nose pointing to -y.
HITBOX_PROFILE = (
    (-0.60, -1.00),
    (0.60, -1.00),
    (1.00, -0.75),
    (0.95, 0.20),
    (1.00, 0.80),
    (0.70, 1.00),
    (-0.70, 1.00),
    (-1.00, 0.80),
    (-0.95, 0.20),
    (-1.00, -0.75),
)

# ---------------- ROAD ------------------
ROAD_WIDTH_RATIO = 0.33
ROAD_LANES = 3
ROAD_INFINITY = 1_000_000

# ---------------- BRAIN -----------------
SENSOR_RAY_COUNT = 5
SENSOR_RAY_LENGTH = 200.0
SENSOR_RAY_SPREAD = math.pi / 2
HIDDEN_LAYERS = (6,)
CONTROL_OUTPUTS = 4  # forward, backward, left, right
CONTROL_THRESHOLD = 0.33

# ---------------- EVOLUTION -------------
POPULATION = 100
MUTATION_BLEND = 0.98
EXPLORE_BLEND = 0.666
EXPLORE_FRACTION = 0.15
CHECKPOINT_DIR = "networks"
CHECKPOINT_INTERVAL = 600
CHECKPOINT_ALIVE_THRESHOLD = 4

# ---------------- TRAFFIC ---------------
TRAFFIC_SIZE = 5
TRAFFIC_SPEED_RANGE = (6.0, 8.5)
# Fractions of the view height: spawn distance ahead, recycle jump
TRAFFIC_SPAWN_RANGE = (0.3, 1.3)
TRAFFIC_RECYCLE_RANGE = (1.5, 3.5)
BRAKE_CHECK_CHANCE = 600  # 1 in N per frame
BRAKE_CHECK_FRAMES = 45
BRAKE_CHECK_SPEED_RATIO = 0.4
BRAKE_RECOVER_SPEED_RATIO = 0.9
LANE_CHANGE_CHANCE = 400
LANE_CHANGE_TOLERANCE = 3.0
LANE_CHANGE_MAX_ANGLE = 15.0
# ---------------------------------------


@dataclass(frozen=True)
class SensorConfig:
    """One fan of rays. ``direction`` rotates the whole fan (radians, + is left)."""

    ray_count: int = SENSOR_RAY_COUNT
    ray_length: float = SENSOR_RAY_LENGTH
    ray_spread: float = SENSOR_RAY_SPREAD
    direction: float = 0.0

    def validate(self):
        if self.ray_count < 1:
            raise ConfigurationError(f"sensor needs at least one ray, got {self.ray_count}")
        if self.ray_length <= 0:
            raise ConfigurationError(f"ray length must be positive, got {self.ray_length}")


@dataclass(frozen=True)
class SimConfig:
    """Immutable bag of every parameter the simulation is built from.

    Groups: view, car, road, brain, evolution, traffic, scheduling,
    checkpoints.
    """

    # ── View ──────────────────────────────────────────────────────────────
    view_width: int = WIDTH
    view_height: int = HEIGHT

    # ── Car ───────────────────────────────────────────────────────────────
    sprite_width: int = SPRITE_WIDTH
    sprite_height: int = SPRITE_HEIGHT
    crop: Optional[Tuple[int, int]] = None
    """Centered crop of the sprite box applied before scaling."""
    scale: Optional[float] = CAR_SCALE
    """``None`` keeps the sprite size."""
    max_velocity: float = MAX_VELOCITY
    acceleration: float = ACCELERATION
    friction: float = FRICTION

    # ── Road ──────────────────────────────────────────────────────────────
    road_width: Optional[float] = None
    """Defaults to ``ROAD_WIDTH_RATIO`` of the view width."""
    road_lanes: int = ROAD_LANES

    # ── Brain ─────────────────────────────────────────────────────────────
    sensors: Tuple[SensorConfig, ...] = field(default_factory=lambda: (SensorConfig(),))
    hidden_layers: Tuple[int, ...] = HIDDEN_LAYERS

    # ── Evolution ─────────────────────────────────────────────────────────
    population_size: int = POPULATION
    mutation_blend: float = MUTATION_BLEND
    explore_blend: float = EXPLORE_BLEND
    explore_fraction: float = EXPLORE_FRACTION
    generation_frames: int = 0
    """Rebuild the whole roster every N frames. ``0`` disables rollover."""

    # ── Traffic ───────────────────────────────────────────────────────────
    traffic_size: int = TRAFFIC_SIZE
    traffic_speed_range: Tuple[float, float] = TRAFFIC_SPEED_RANGE

    # ── Scheduling ────────────────────────────────────────────────────────
    dt: float = 1.0
    """Frame timestep in nominal frames (1.0 = one frame at ``TARGET_FPS``)."""
    target_fps: int = TARGET_FPS
    workers: int = 1
    batched: bool = False
    with_player: bool = False
    seed: Optional[int] = None

    # ── Checkpoints ───────────────────────────────────────────────────────
    checkpoint_dir: Optional[str] = CHECKPOINT_DIR
    checkpoint_interval: int = CHECKPOINT_INTERVAL
    checkpoint_alive_threshold: int = CHECKPOINT_ALIVE_THRESHOLD

    @property
    def effective_road_width(self):
        if self.road_width is not None:
            return self.road_width
        return self.view_width * ROAD_WIDTH_RATIO

    @property
    def ray_total(self):
        return sum(s.ray_count for s in self.sensors)

    @property
    def layer_sizes(self):
        return (self.ray_total, *self.hidden_layers, CONTROL_OUTPUTS)

    def validate(self):
        """Raise :class:`ConfigurationError` for any value outside its range."""
        if self.scale is not None and not 0.0 < self.scale < 1.0:
            raise ConfigurationError(f"scale must be in (0, 1), got {self.scale}")
        if self.road_lanes < 1:
            raise ConfigurationError(f"road needs at least one lane, got {self.road_lanes}")
        if self.effective_road_width <= 0:
            raise ConfigurationError(f"road width must be positive, got {self.effective_road_width}")
        if not self.sensors:
            raise ConfigurationError("at least one sensor is required")
        for sensor in self.sensors:
            sensor.validate()
        if any(n < 1 for n in self.hidden_layers):
            raise ConfigurationError(f"hidden layer sizes must be positive: {self.hidden_layers}")
        if self.population_size < 1:
            raise ConfigurationError(f"population must be positive, got {self.population_size}")
        if self.traffic_size < 0:
            raise ConfigurationError(f"traffic size cannot be negative, got {self.traffic_size}")
        lo, hi = self.traffic_speed_range
        if not 0 < lo <= hi:
            raise ConfigurationError(f"bad traffic speed range {self.traffic_speed_range}")
        for name in ("mutation_blend", "explore_blend", "explore_fraction"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")
        if self.dt <= 0:
            raise ConfigurationError(f"dt must be positive, got {self.dt}")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be at least 1, got {self.workers}")
        if self.max_velocity <= 0 or self.acceleration < 0 or self.friction < 0:
            raise ConfigurationError("motion parameters out of range")
        return self

    def with_overrides(self, **overrides):
        """Copy with the given fields replaced; ``None`` values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
