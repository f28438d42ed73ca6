"""
simulation.py
=============
The world: road, brained roster, scripted traffic, an optional player car
and the scrolling camera. :meth:`Simulation.step` advances everything by one
frame; :meth:`Simulation.run` drives it at a fixed rate without a window.

Frame order
-----------
1. traffic moves (scripted, borders only)
2. traffic hitboxes are snapshotted
3. the player car and the whole roster update against that snapshot
4. best tracking, checkpoints and respawns (see :mod:`neuroroad.population`)
5. the camera follows the leader and passed traffic is recycled
"""

import logging
import random
import time
from typing import List, NamedTuple, Optional

import numpy as np

from .car import Car, CarView, Dimensions, Motion
from .config import CAMERA_ANCHOR, SimConfig
from .controls import PlayerControl
from .population import Population, PopulationState, load_checkpoints
from .road import Road
from .sensor import Sensor
from .traffic import generate_traffic, recycle_passed

log = logging.getLogger("simulation")


class SimSnapshot(NamedTuple):
    cars: List[CarView]
    camera_offset: float
    frame: int
    generation: int
    alive: int
    population: int
    best_score: Optional[int]
    crashes: int
    respawns: int


class Simulation:
    def __init__(self, config=None):
        self.config = (config if config is not None else SimConfig()).validate()
        c = self.config
        self.rng = random.Random(c.seed)
        self.np_rng = np.random.default_rng(c.seed)

        self.road = Road(c.view_width / 2, c.effective_road_width, c.road_lanes)
        self.dims = Dimensions.from_sprite(c.sprite_width, c.sprite_height, c.crop, c.scale)
        self.start_y = c.view_height * CAMERA_ANCHOR
        self.camera_offset = 0.0

        if c.checkpoint_dir:
            self.state = PopulationState.seeded(*load_checkpoints(c.checkpoint_dir, c.layer_sizes))
        else:
            self.state = PopulationState()
        self.population = Population(c, self.road, self.dims, self.start_y,
                                     self.state.parents(), self.np_rng, self.rng)
        self.traffic = self._new_traffic()
        self.player = self._new_player() if c.with_player else None
        log.info("simulation ready: %d cars, %d traffic, layers %s",
                 c.population_size, c.traffic_size, c.layer_sizes)

    def _new_traffic(self):
        c = self.config
        return generate_traffic(c.traffic_size, self.road, self.dims, c.view_height,
                                c.traffic_speed_range, self.rng)

    def _new_player(self):
        c = self.config
        motion = Motion(max_velocity=c.max_velocity, acceleration=c.acceleration, friction=c.friction)
        lane = self.road.lanes // 2
        sensors = [Sensor(cfg) for cfg in c.sensors]
        return Car(self.road.lane_center(lane), self.start_y, self.dims, PlayerControl(),
                   sensors, motion, lane=lane)

    # ---------------- input ----------------

    def set_player_controls(self, name, pressed):
        if self.player is not None:
            self.player.control.press(name, pressed)

    def reset_player(self):
        if self.player is not None:
            self.player = self._new_player()
            self.camera_offset = 0.0

    # ---------------- frame ----------------

    def obstacles(self):
        return [car.snapshot() for car in self.traffic]

    def _follow(self):
        if self.player is not None:
            focus_y = self.player.y
        elif self.state.leader_y is not None:
            focus_y = self.state.leader_y
        else:
            return
        self.camera_offset = focus_y - self.config.view_height * CAMERA_ANCHOR

    def step(self, dt=None):
        c = self.config
        dt = c.dt if dt is None else dt
        state = self.state
        state.frame += 1

        for car in self.traffic:
            car.update(self.road, (), dt)
        obstacles = self.obstacles()

        if self.player is not None:
            if self.player.update(self.road, obstacles, dt):
                log.info("player crashed at y=%.0f", self.player.y)
        self.population.step(state, obstacles, dt, self.camera_offset)

        self._follow()
        recycle_passed(self.traffic, self.road, c.view_height, self.camera_offset,
                       c.traffic_speed_range, self.rng)

        if c.generation_frames and state.frame % c.generation_frames == 0:
            self.population.new_generation(state)
            self.traffic = self._new_traffic()
            self.camera_offset = 0.0
        return state

    def run(self, frames=None, realtime=True):
        """Fixed-timestep loop; sleeps the rest of each frame when ``realtime``."""
        frame_time = 1.0 / self.config.target_fps
        done = 0
        while frames is None or done < frames:
            start = time.perf_counter()
            self.step()
            done += 1
            elapsed = time.perf_counter() - start
            if realtime and elapsed < frame_time:
                time.sleep(frame_time - elapsed)
        return self.state

    # ---------------- render boundary ----------------

    def snapshot(self):
        leader = self.state.leader_id
        cars = [car.render_state() for car in self.traffic]
        cars += [a.render_state(a.id == leader) for a in self.population.agents]
        if self.player is not None:
            cars.append(self.player.render_state(True))
        best = self.state.best
        return SimSnapshot(
            cars=cars,
            camera_offset=self.camera_offset,
            frame=self.state.frame,
            generation=self.state.generation,
            alive=self.state.alive,
            population=len(self.population.agents),
            best_score=best.score if best is not None and best.owner >= 0 else None,
            crashes=self.state.crashes,
            respawns=self.state.respawns,
        )

    def close(self):
        self.population.save_checkpoint(self.state)
        self.population.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
