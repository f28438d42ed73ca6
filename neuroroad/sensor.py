"""
Ray sensors.

A :class:`Sensor` is a fan of :class:`Ray` objects fixed relative to the
car's forward axis. Every frame each ray is cast from the car center
against the road borders and the hitboxes of nearby cars; its reading is
``1 - t`` of the closest hit (1.0 touching, 0.0 nothing in range). Ray
order is the order of the brain's inputs and never changes.
"""

import math

from .config import SensorConfig
from .geometry import Point, intersect, lerp


class Ray:
    __slots__ = ['length', 'angle', 'start', 'end', 'touch', 'value']

    def __init__(self, length, angle):
        self.length = float(length)
        self.angle = float(angle)
        self.start = self.end = Point(0.0, 0.0)
        self.touch = None
        self.value = 0.0

    def cast(self, x, y, heading, borders, obstacles=()):
        """
        Cast from ``(x, y)`` with the car heading ``heading`` (degrees).

        borders: iterable of segments
        obstacles: iterable of closed polygons (point lists)
        Returns the reading in [0, 1].
        """
        a = math.radians(heading) - self.angle
        self.start = Point(x, y)
        self.end = Point(x + math.sin(a) * self.length, y - math.cos(a) * self.length)

        best = None
        for seg in borders:
            hit = intersect(self.start, self.end, seg[0], seg[1])
            if hit is not None and (best is None or hit[1] < best[1]):
                best = hit

        for poly in obstacles:
            n = len(poly)
            for i in range(n):
                hit = intersect(self.start, self.end, poly[i], poly[(i + 1) % n])
                if hit is not None and (best is None or hit[1] < best[1]):
                    best = hit

        if best is None:
            self.touch = None
            self.value = 0.0
        else:
            self.touch = best[0]
            self.value = 1.0 - best[1]
        return self.value

    def segment(self):
        """Drawn part of the ray: start to the closest hit (or the full length)."""
        return self.start, self.touch if self.touch is not None else self.end


class Sensor:
    def __init__(self, config=None):
        self.config = config if config is not None else SensorConfig()
        self.config.validate()
        n = self.config.ray_count
        spread = self.config.ray_spread
        self.rays = []
        for i in range(n):
            offset = lerp(spread / 2, -spread / 2, 0.5 if n == 1 else i / (n - 1))
            self.rays.append(Ray(self.config.ray_length, self.config.direction + offset))

    @property
    def ray_count(self):
        return len(self.rays)

    @property
    def reach(self):
        return self.config.ray_length

    @property
    def readings(self):
        return [ray.value for ray in self.rays]

    def update(self, x, y, heading, borders, obstacles=()):
        """Cast every ray; returns the readings in ray order."""
        return [ray.cast(x, y, heading, borders, obstacles) for ray in self.rays]

    def reset(self):
        for ray in self.rays:
            ray.touch = None
            ray.value = 0.0
