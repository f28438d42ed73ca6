"""
Control strategies.

Every car owns exactly one strategy that turns the current frame into
:class:`Controls`:

* :class:`PlayerControl`  - keyboard intent from the viewer
* :class:`NeuralControl`  - sensor readings through a brain
* :class:`ScriptedControl` - probabilistic brake-check / lane-change traffic
"""

import random
from dataclasses import dataclass
from enum import Enum

from .config import (
    BRAKE_CHECK_CHANCE,
    BRAKE_CHECK_FRAMES,
    BRAKE_CHECK_SPEED_RATIO,
    BRAKE_RECOVER_SPEED_RATIO,
    CONTROL_OUTPUTS,
    CONTROL_THRESHOLD,
    LANE_CHANGE_CHANCE,
    LANE_CHANGE_MAX_ANGLE,
    LANE_CHANGE_TOLERANCE,
)


@dataclass
class Controls:
    forward: bool = False
    backward: bool = False
    left: bool = False
    right: bool = False

    NAMES = ("forward", "backward", "left", "right")

    @classmethod
    def from_outputs(cls, outputs, threshold=CONTROL_THRESHOLD):
        """Map the brain's 4 outputs (forward, backward, left, right) to booleans."""
        assert len(outputs) == CONTROL_OUTPUTS, f"expected {CONTROL_OUTPUTS} outputs, got {len(outputs)}"
        return cls(*(bool(o > threshold) for o in outputs))

    def as_tuple(self):
        return (self.forward, self.backward, self.left, self.right)


class PlayerControl:
    kind = "player"

    def __init__(self):
        self.controls = Controls()

    def press(self, name, pressed):
        if name in Controls.NAMES:
            setattr(self.controls, name, bool(pressed))

    def decide(self, car, readings, road):
        return Controls(*self.controls.as_tuple())


class NeuralControl:
    kind = "neural"

    def __init__(self, brain, threshold=CONTROL_THRESHOLD):
        self.brain = brain
        self.threshold = threshold
        self.outputs = None

    def apply(self, outputs):
        """Threshold outputs computed elsewhere (batched path)."""
        self.outputs = outputs
        return Controls.from_outputs(outputs, self.threshold)

    def decide(self, car, readings, road):
        return self.apply(self.brain.feed_forward(readings))


class TrafficState(Enum):
    CRUISING = "cruising"
    BRAKE_CHECKING = "brake_checking"
    CHANGING_LANE = "changing_lane"


def heading_deviation(heading):
    """Heading in (-180, 180]; negative is to the left of straight ahead."""
    return heading - 360.0 if heading > 180.0 else heading


class ScriptedControl:
    """Dummy traffic driver: cruises, randomly brake-checks and changes lanes."""

    kind = "scripted"

    def __init__(self, rng=None,
                 brake_check_chance=BRAKE_CHECK_CHANCE,
                 lane_change_chance=LANE_CHANGE_CHANCE):
        self.rng = rng if rng is not None else random.Random()
        self.brake_check_chance = brake_check_chance
        self.lane_change_chance = lane_change_chance
        self.state = TrafficState.CRUISING
        self.frames_remaining = 0

    def reset(self):
        self.state = TrafficState.CRUISING
        self.frames_remaining = 0

    def _roll(self, chance):
        return chance > 0 and self.rng.randrange(chance) == 0

    def start_brake_check(self, car, frames=BRAKE_CHECK_FRAMES):
        self.state = TrafficState.BRAKE_CHECKING
        self.frames_remaining = frames
        car.motion.velocity = min(car.motion.velocity, car.motion.max_velocity * BRAKE_CHECK_SPEED_RATIO)

    def start_lane_change(self, car, road):
        candidates = [lane for lane in (car.lane - 1, car.lane + 1) if 0 <= lane < road.lanes]
        if not candidates:
            return False
        car.target_lane = self.rng.choice(candidates)
        self.state = TrafficState.CHANGING_LANE
        return True

    def decide(self, car, readings, road):
        if self.state is TrafficState.CRUISING:
            if self._roll(self.brake_check_chance):
                self.start_brake_check(car)
            elif self._roll(self.lane_change_chance):
                self.start_lane_change(car, road)

        if self.state is TrafficState.BRAKE_CHECKING:
            return self._brake_check(car)
        if self.state is TrafficState.CHANGING_LANE:
            return self._change_lane(car, road)
        return Controls(forward=True)

    def _brake_check(self, car):
        motion = car.motion
        self.frames_remaining -= 1
        if self.frames_remaining <= 0:
            motion.velocity = motion.max_velocity * BRAKE_RECOVER_SPEED_RATIO
            self.state = TrafficState.CRUISING
            return Controls(forward=True)
        motion.velocity = min(motion.velocity, motion.max_velocity * BRAKE_CHECK_SPEED_RATIO)
        return Controls()

    def _change_lane(self, car, road):
        # A crash cancels the lane change from the car side
        if car.target_lane is None:
            self.state = TrafficState.CRUISING
            return Controls(forward=True)

        dx = road.lane_center(car.target_lane) - car.x
        if abs(dx) <= LANE_CHANGE_TOLERANCE:
            car.finish_lane_change()
            self.state = TrafficState.CRUISING
            return Controls(forward=True)

        dev = heading_deviation(car.heading)
        return Controls(
            forward=True,
            left=dx < 0 and dev > -LANE_CHANGE_MAX_ANGLE,
            right=dx > 0 and dev < LANE_CHANGE_MAX_ANGLE,
        )
