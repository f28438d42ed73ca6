"""
population.py
=============
Roster of brained cars and the selection loop that breeds them.

The loop keeps two tracked brains in an explicit :class:`PopulationState`:

* ``best`` - fed by the car farthest along the road each frame,
* ``second_best`` - fed by the highest-scoring car each frame.

A slot is only taken over by a car that is strictly farther along *and*
has a non-worse score. Every car that crashes or falls behind the camera
is replaced by an offspring of one of the two tracked brains.
"""

import logging
import math
import os
import random
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .batched import BatchedBrains, setup_device
from .car import Motion, make_neural_car
from .network import NeuralNetwork, load_matching

log = logging.getLogger("population")

CHECKPOINT_FILES = ("best.json", "second_best.json")


@dataclass
class BrainRecord:
    brain: NeuralNetwork
    score: int
    y: float
    owner: int


@dataclass
class PopulationState:
    best: Optional[BrainRecord] = None
    second_best: Optional[BrainRecord] = None
    alive: int = 0
    generation: int = 1
    frame: int = 0
    crashes: int = 0
    respawns: int = 0
    checkpoints_written: int = 0
    leader_id: Optional[int] = None
    leader_y: Optional[float] = None
    # Where the last live leader was; survives a frame in which every car crashed
    last_leader_y: Optional[float] = None

    @classmethod
    def seeded(cls, best=None, second_best=None):
        """State whose slots hold loaded brains that any live car can take over."""
        state = cls()
        if best is not None:
            state.best = BrainRecord(best, 0, math.inf, -1)
        if second_best is not None:
            state.second_best = BrainRecord(second_best, 0, math.inf, -1)
        return state

    def parents(self):
        return [r.brain for r in (self.best, self.second_best) if r is not None]

    def forget_positions(self):
        """Keep the brains but let a fresh roster take the slots over again."""
        for record in (self.best, self.second_best):
            if record is not None:
                record.score, record.y, record.owner = 0, math.inf, -1
        self.last_leader_y = None


def update_slot(record, car):
    if record is None:
        return BrainRecord(car.brain.copy(), car.score, car.y, car.id)
    if record.owner == car.id:
        record.score, record.y = car.score, car.y
        return record
    if car.y < record.y and car.score >= record.score:
        return BrainRecord(car.brain.copy(), car.score, car.y, car.id)
    return record


def track_best(state, agents):
    """Update leader and tracked brains from the undamaged agents."""
    alive = [a for a in agents if not a.damaged]
    state.alive = len(alive)
    if not alive:
        state.leader_id = state.leader_y = None
        return
    leader = min(alive, key=lambda a: a.y)
    scorer = max(alive, key=lambda a: a.score)
    state.best = update_slot(state.best, leader)
    state.second_best = update_slot(state.second_best, scorer)
    state.leader_id, state.leader_y = leader.id, leader.y
    state.last_leader_y = leader.y


def load_checkpoints(directory, layer_sizes):
    """Brains saved by an earlier run; missing or unusable files give ``None``."""
    return tuple(load_matching(os.path.join(directory, name), layer_sizes) for name in CHECKPOINT_FILES)


class Population:
    def __init__(self, config, road, dims, start_y, parents=(), np_rng=None, rng=None):
        self.config = config
        self.road = road
        self.dims = dims
        self.start_y = start_y
        self.layer_sizes = config.layer_sizes
        self.np_rng = np_rng if np_rng is not None else np.random.default_rng()
        self.rng = rng if rng is not None else random.Random()
        self.executor = ThreadPoolExecutor(max_workers=config.workers) if config.workers > 1 else None
        self.device = setup_device() if config.batched else None
        self._batched = None
        self.agents = self.build_roster(parents)

    # ---------------- breeding ----------------

    def _motion(self):
        c = self.config
        return Motion(max_velocity=c.max_velocity, acceleration=c.acceleration, friction=c.friction)

    def new_agent(self, lane, y, base=None, t=1.0):
        brain = NeuralNetwork.offspring(self.layer_sizes, base, t, self.np_rng)
        return make_neural_car(self.road.lane_center(lane), y, self.dims, brain,
                               self.config.sensors, self._motion(), lane=lane)

    def build_roster(self, parents=()):
        """Fresh roster at the start line in the middle lane."""
        parents = list(parents)
        c = self.config
        explorers = int(c.population_size * c.explore_fraction)
        lane = self.road.lanes // 2
        agents = []
        for i in range(c.population_size):
            base = self.rng.choice(parents) if parents else None
            t = c.explore_blend if i < explorers else c.mutation_blend
            agents.append(self.new_agent(lane, self.start_y, base, t))
        self._batched = None
        return agents

    def respawn(self, index, state):
        parents = state.parents()
        base = self.rng.choice(parents) if parents else None
        c = self.config
        t = c.explore_blend if self.rng.random() < c.explore_fraction else c.mutation_blend
        y = state.last_leader_y if state.last_leader_y is not None else self.start_y
        self.agents[index] = self.new_agent(self.road.random_lane(self.rng), y, base, t)
        state.respawns += 1
        self._batched = None

    def new_generation(self, state):
        best = state.best
        log.info("Gen %d | Best score: %s | Respawns: %d", state.generation,
                 best.score if best is not None else "-", state.respawns)
        self.save_checkpoint(state)
        state.generation += 1
        state.forget_positions()
        self.agents = self.build_roster(state.parents())

    # ---------------- frame ----------------

    def _map(self, fn, items):
        if self.executor is not None:
            return list(self.executor.map(fn, items))
        return [fn(item) for item in items]

    def _sweep_batched(self, obstacles, dt):
        road = self.road
        crashed = [a.begin_frame(road, obstacles) for a in self.agents]
        self._map(lambda a: a.sense(road, obstacles), self.agents)

        if self._batched is None:
            self._batched = BatchedBrains([a.brain for a in self.agents], self.device)
        width = self.layer_sizes[0]
        inputs = np.zeros((len(self.agents), width), dtype=np.float32)
        mask = np.zeros(len(self.agents), dtype=bool)
        for i, a in enumerate(self.agents):
            if not a.damaged:
                inputs[i] = a.readings
                mask[i] = True
        outputs = self._batched.dispatch(inputs, mask).result()

        for a, out in zip(self.agents, outputs):
            a.think_from(out)
            a.move(dt=dt)
        return crashed

    def sweep(self, obstacles, dt=1.0):
        """Update every agent against a read-only obstacle snapshot."""
        if self.config.batched:
            return self._sweep_batched(obstacles, dt)
        road = self.road
        return self._map(lambda a: a.update(road, obstacles, dt), self.agents)

    def step(self, state, obstacles, dt=1.0, camera_offset=0.0):
        """
        One frame for the roster: sweep, track, checkpoint, respawn.

        Returns the number of agents replaced this frame.
        """
        was_alive = state.alive
        crashed = self.sweep(obstacles, dt)
        state.crashes += sum(crashed)
        track_best(state, self.agents)

        threshold = self.config.checkpoint_alive_threshold
        interval = self.config.checkpoint_interval
        if (interval and state.frame % interval == 0) or (was_alive >= threshold > state.alive):
            self.save_checkpoint(state)

        view_height = self.config.view_height
        replaced = 0
        for i, a in enumerate(self.agents):
            if a.damaged or a.is_passed_bottom_bound(view_height, camera_offset):
                self.respawn(i, state)
                replaced += 1
        return replaced

    # ---------------- persistence ----------------

    def save_checkpoint(self, state):
        directory = self.config.checkpoint_dir
        if not directory or state.best is None:
            return False
        records = (state.best, state.second_best)
        try:
            for name, record in zip(CHECKPOINT_FILES, records):
                if record is not None:
                    record.brain.save(os.path.join(directory, name))
        except OSError as e:
            log.error("checkpoint to %s failed: %s", directory, e)
            return False
        state.checkpoints_written += 1
        log.info("checkpoint %d saved to %s (best score %d)",
                 state.checkpoints_written, directory, state.best.score)
        return True

    def close(self):
        if self.executor is not None:
            self.executor.shutdown(wait=True)
            self.executor = None
