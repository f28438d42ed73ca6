"""
Car agent: pose, motion, hitbox, sensors and a control strategy.

One frame of :meth:`Car.update` runs, strictly in order:
damage check -> sense -> think -> move. The batched path in
:mod:`neuroroad.population` calls the same steps one by one so that the
brains of the whole roster can be evaluated in a single pass.
"""

import itertools
import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

from .config import (
    ACCELERATION,
    FRICTION,
    HITBOX_PROFILE,
    LOW_SPEED_ACCEL_DIVISOR,
    MAX_VELOCITY,
    STEER_MIN_VELOCITY,
    STEER_RATE,
)
from .controls import Controls, NeuralControl, ScriptedControl
from .errors import ConfigurationError
from .geometry import Point, polygon_edges, polygons_intersect, segment_intersect
from .sensor import Sensor

_ids = itertools.count()


def normalize_heading(angle):
    """Wrap degrees into [0, 360)."""
    angle %= 360.0
    # -1e-20 % 360.0 rounds up to 360.0
    return 0.0 if angle >= 360.0 else angle


@dataclass(frozen=True)
class Dimensions:
    """Size of a car on the road, fixed at construction."""

    width: float
    height: float

    @classmethod
    def from_sprite(cls, sprite_width, sprite_height, crop=None, scale=None):
        """Sprite box, optionally center-cropped to ``crop``, then scaled.

        ``scale=None`` keeps the sprite size; any other value must be in (0, 1).
        """
        if scale is None:
            scale = 1.0
        elif not 0.0 < scale < 1.0:
            raise ConfigurationError(f"scale must be in (0, 1), got {scale}")
        w, h = sprite_width, sprite_height
        if crop is not None:
            w, h = min(crop[0], w), min(crop[1], h)
        if w <= 0 or h <= 0:
            raise ConfigurationError(f"car size must be positive, got {w}x{h}")
        return cls(w * scale, h * scale)

    @property
    def radius(self):
        """Radius of the circle around the car center that contains the hitbox."""
        return math.hypot(self.width, self.height) / 2


class Motion:
    __slots__ = ['velocity', 'max_velocity', 'acceleration', 'friction']

    def __init__(self, max_velocity=MAX_VELOCITY, acceleration=ACCELERATION,
                 friction=FRICTION, velocity=0.0):
        self.velocity = velocity
        self.max_velocity = max_velocity
        self.acceleration = acceleration
        self.friction = friction

    def accelerate(self, forward, backward, dt=1.0):
        # Slower pickup below half speed, which also makes reversing slow
        step = self.acceleration
        if self.velocity < self.max_velocity / 2:
            step /= LOW_SPEED_ACCEL_DIVISOR
        if forward:
            self.velocity += step * dt
        if backward:
            self.velocity -= step * dt
        self.clamp()

    def clamp(self):
        if self.velocity > self.max_velocity:
            self.velocity = self.max_velocity
        elif self.velocity < -self.max_velocity / 2:
            self.velocity = -self.max_velocity / 2

    def apply_friction(self, dt=1.0):
        if self.velocity > 0:
            self.velocity = max(0.0, self.velocity - self.friction * dt)
        elif self.velocity < 0:
            self.velocity = min(0.0, self.velocity + self.friction * dt)
        if abs(self.velocity) < self.friction:
            self.velocity = 0.0


class HitboxSnapshot(NamedTuple):
    """Frozen copy of a car's hitbox that other cars read during a sweep."""

    owner: int
    points: Tuple[Point, ...]
    x: float
    y: float
    radius: float


class CarView(NamedTuple):
    """Read-only state handed to the viewer."""

    id: int
    kind: str
    x: float
    y: float
    width: float
    height: float
    heading: float
    hitbox: Tuple[Point, ...]
    rays: Tuple[Tuple[Point, Point], ...]
    damaged: bool
    is_best: bool
    score: int


class Car:
    def __init__(self, x, y, dims, control, sensors=(), motion=None, heading=0.0, lane=0):
        self.id = next(_ids)
        self.x = float(x)
        self.y = float(y)
        self.heading = normalize_heading(heading)
        self.dims = dims
        self.motion = motion if motion is not None else Motion()
        self.control = control
        self.sensors = list(sensors)
        self.damaged = False
        self.score = 0
        self.lane = lane
        self.target_lane: Optional[int] = None
        self.readings = []
        self.controls = Controls()
        self.hitbox = ()
        self.refresh_hitbox()

    # ---------------- read-only helpers ----------------

    @property
    def kind(self):
        return self.control.kind

    @property
    def brain(self):
        return self.control.brain if isinstance(self.control, NeuralControl) else None

    @property
    def changing_lane(self):
        return self.target_lane is not None

    @property
    def ray_count(self):
        return sum(s.ray_count for s in self.sensors)

    @property
    def sensor_reach(self):
        return max((s.reach for s in self.sensors), default=0.0)

    def snapshot(self):
        return HitboxSnapshot(self.id, self.hitbox, self.x, self.y, self.dims.radius)

    def is_passed_bottom_bound(self, view_height, offset):
        """True once the whole car has scrolled below the bottom of the window."""
        return (self.y - self.dims.height / 2) - offset > view_height

    def render_state(self, is_best=False):
        rays = tuple(ray.segment() for s in self.sensors for ray in s.rays) if not self.damaged else ()
        return CarView(self.id, self.kind, self.x, self.y, self.dims.width, self.dims.height,
                       self.heading, self.hitbox, rays, self.damaged, is_best, self.score)

    # ---------------- lane bookkeeping ----------------

    def place(self, road, lane, y, heading=0.0):
        """Put the car at the center of ``lane`` (raises LaneIndexError if invalid)."""
        self.x = road.lane_center(lane)
        self.y = float(y)
        self.lane = lane
        self.target_lane = None
        self.heading = normalize_heading(heading)
        self.refresh_hitbox()

    def finish_lane_change(self):
        self.lane = self.target_lane
        self.target_lane = None
        self.heading = 0.0

    # ---------------- frame steps ----------------

    def refresh_hitbox(self):
        hw, hh = self.dims.width / 2, self.dims.height / 2
        rad = math.radians(self.heading)
        cos_a, sin_a = math.cos(rad), math.sin(rad)
        self.hitbox = tuple(
            Point(self.x + px * hw * cos_a - py * hh * sin_a,
                  self.y + px * hw * sin_a + py * hh * cos_a)
            for px, py in HITBOX_PROFILE
        )
        return self.hitbox

    def _near(self, obstacles, reach):
        for ob in obstacles:
            if ob.owner == self.id:
                continue
            if math.hypot(ob.x - self.x, ob.y - self.y) <= reach + ob.radius:
                yield ob

    def hits_anything(self, borders, obstacles=()):
        edges = polygon_edges(self.hitbox)
        if any(segment_intersect(edge, seg) is not None for edge in edges for seg in borders):
            return True
        return any(polygons_intersect(self.hitbox, ob.points)
                   for ob in self._near(obstacles, self.dims.radius))

    def mark_damaged(self):
        """Returns True only on the first transition to damaged."""
        if self.damaged:
            return False
        self.damaged = True
        self.target_lane = None
        self.heading = 0.0
        self.controls = Controls()
        for sensor in self.sensors:
            sensor.reset()
        return True

    def begin_frame(self, road, obstacles=()):
        """Score, hitbox and damage check. Returns True if the car just crashed."""
        if not self.damaged:
            self.score += 1
        self.refresh_hitbox()
        if not self.damaged and self.hits_anything(road.borders, obstacles):
            return self.mark_damaged()
        return False

    def sense(self, road, obstacles=()):
        if self.damaged:
            return self.readings
        nearby = [ob.points for ob in self._near(obstacles, self.sensor_reach)]
        readings = []
        for sensor in self.sensors:
            readings.extend(sensor.update(self.x, self.y, self.heading, road.borders, nearby))
        self.readings = readings
        self.score += 1
        return readings

    def think(self, road):
        if self.damaged:
            self.controls = Controls()
        else:
            self.controls = self.control.decide(self, self.readings, road)
        return self.controls

    def think_from(self, outputs):
        """Use brain outputs evaluated by the batched path."""
        if self.damaged:
            self.controls = Controls()
        else:
            self.controls = self.control.apply(outputs)
        return self.controls

    def move(self, controls=None, dt=1.0):
        c = controls if controls is not None else self.controls
        motion = self.motion
        motion.accelerate(c.forward, c.backward, dt)
        motion.apply_friction(dt)

        if abs(motion.velocity) > STEER_MIN_VELOCITY:
            flip = 1.0 if motion.velocity > 0 else -1.0
            if c.left:
                self.heading -= STEER_RATE * dt * flip
            if c.right:
                self.heading += STEER_RATE * dt * flip
        self.heading = normalize_heading(self.heading)

        rad = math.radians(self.heading)
        self.x += math.sin(rad) * motion.velocity * dt
        self.y -= math.cos(rad) * motion.velocity * dt
        self.refresh_hitbox()

    def update(self, road, obstacles=(), dt=1.0):
        """One full frame. Returns True if the car crashed during this frame."""
        crashed = self.begin_frame(road, obstacles)
        self.sense(road, obstacles)
        self.think(road)
        self.move(dt=dt)
        return crashed


def make_neural_car(x, y, dims, brain, sensor_configs, motion=None, lane=0):
    sensors = [Sensor(cfg) for cfg in sensor_configs]
    ray_total = sum(s.ray_count for s in sensors)
    if brain.input_count != ray_total:
        raise ConfigurationError(f"brain takes {brain.input_count} inputs but sensors give {ray_total}")
    return Car(x, y, dims, NeuralControl(brain), sensors, motion, lane=lane)


def make_traffic_car(x, y, dims, max_velocity, rng=None, lane=0):
    motion = Motion(max_velocity=max_velocity, velocity=max_velocity)
    return Car(x, y, dims, ScriptedControl(rng), motion=motion, lane=lane)
