"""Scripted traffic: spawning ahead of the start line and recycling passed cars."""

import logging
import random

from .car import make_traffic_car
from .config import TRAFFIC_RECYCLE_RANGE, TRAFFIC_SPAWN_RANGE

log = logging.getLogger("traffic")


def as_dummy(car, max_velocity):
    """Reset a traffic car to cruise at ``max_velocity``."""
    car.motion.max_velocity = max_velocity
    car.motion.velocity = max_velocity
    car.damaged = False
    car.control.reset()


def generate_traffic(amount, road, dims, view_height, speed_range, rng=None):
    rng = rng if rng is not None else random.Random()
    cars = []
    for i in range(amount):
        max_velocity = rng.uniform(*speed_range)
        start_y = rng.uniform(*(view_height * f for f in TRAFFIC_SPAWN_RANGE))
        lane = i % road.lanes
        car = make_traffic_car(road.lane_center(lane), -start_y, dims, max_velocity,
                               rng=random.Random(rng.random()), lane=lane)
        cars.append(car)
    return cars


def recycle(car, road, view_height, speed_range, rng):
    """Jump a car that fell behind the camera back ahead of it."""
    jump_y = rng.uniform(*(view_height * f for f in TRAFFIC_RECYCLE_RANGE))
    car.place(road, road.random_lane(rng), car.y - jump_y)
    as_dummy(car, rng.uniform(*speed_range))
    log.debug("recycled traffic car %d into lane %d", car.id, car.lane)


def recycle_passed(traffic, road, view_height, offset, speed_range, rng):
    """Recycle every car below the bottom of the window. Returns how many moved."""
    moved = 0
    for car in traffic:
        if car.is_passed_bottom_bound(view_height, offset):
            recycle(car, road, view_height, speed_range, rng)
            moved += 1
    return moved
