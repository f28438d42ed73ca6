"""
Car motion, hitbox collision and road lane tests.
"""

from __future__ import annotations

import random
import unittest

import numpy as np

from neuroroad.car import Car, Dimensions, Motion, make_neural_car, normalize_heading
from neuroroad.config import SensorConfig
from neuroroad.controls import Controls, PlayerControl
from neuroroad.errors import ConfigurationError, LaneIndexError
from neuroroad.network import NeuralNetwork
from neuroroad.road import Road

DIMS = Dimensions(30.0, 60.0)


def wide_road() -> Road:
    return Road(0.0, 1000.0, 3)


class MotionTests(unittest.TestCase):
    def test_forward_never_exceeds_max(self) -> None:
        motion = Motion(max_velocity=10.0, acceleration=0.4, friction=0.08)
        for _ in range(200):
            motion.accelerate(True, False)
            self.assertLessEqual(motion.velocity, 10.0)
        self.assertEqual(motion.velocity, 10.0)

    def test_reverse_is_limited_to_half(self) -> None:
        motion = Motion(max_velocity=10.0, acceleration=0.4, friction=0.08)
        for _ in range(200):
            motion.accelerate(False, True)
            self.assertGreaterEqual(motion.velocity, -5.0)
        self.assertEqual(motion.velocity, -5.0)

    def test_slow_pickup_below_half_speed(self) -> None:
        motion = Motion(max_velocity=10.0, acceleration=0.4)
        motion.accelerate(True, False)
        self.assertAlmostEqual(motion.velocity, 0.4 / 1.6)
        motion.velocity = 6.0
        motion.accelerate(True, False)
        self.assertAlmostEqual(motion.velocity, 6.4)

    def test_friction_snaps_to_exact_zero(self) -> None:
        for start in (0.05, -0.05, 0.1, -0.1):
            motion = Motion(friction=0.08, velocity=start)
            motion.apply_friction()
            self.assertEqual(motion.velocity, 0.0, msg=f"start={start}")

    def test_friction_never_flips_direction(self) -> None:
        motion = Motion(friction=0.08, velocity=0.5)
        motion.apply_friction(dt=100.0)
        self.assertEqual(motion.velocity, 0.0)


class HeadingTests(unittest.TestCase):
    def test_normalize(self) -> None:
        self.assertEqual(normalize_heading(360.0), 0.0)
        self.assertAlmostEqual(normalize_heading(-1.5), 358.5)
        self.assertAlmostEqual(normalize_heading(725.0), 5.0)
        self.assertEqual(normalize_heading(-1e-20), 0.0)

    def test_steering_left_wraps(self) -> None:
        car = Car(0.0, 0.0, DIMS, PlayerControl(), motion=Motion(velocity=5.0))
        car.move(Controls(left=True))
        self.assertAlmostEqual(car.heading, 358.5)
        self.assertTrue(0.0 <= car.heading < 360.0)

    def test_steering_is_flipped_in_reverse(self) -> None:
        car = Car(0.0, 0.0, DIMS, PlayerControl(), motion=Motion(velocity=-3.0))
        car.move(Controls(left=True))
        self.assertAlmostEqual(car.heading, 1.5)

    def test_no_steering_when_stopped(self) -> None:
        car = Car(0.0, 0.0, DIMS, PlayerControl())
        car.move(Controls(left=True))
        self.assertEqual(car.heading, 0.0)

    def test_invariants_hold_over_many_frames(self) -> None:
        rng = random.Random(7)
        motion = Motion(max_velocity=10.0, acceleration=0.4, friction=0.08)
        car = Car(0.0, 0.0, DIMS, PlayerControl(), motion=motion)
        for frame in range(5000):
            controls = Controls(*(rng.random() < 0.5 for _ in range(4)))
            car.move(controls, dt=rng.choice((0.5, 1.0, 2.0)))
            v = car.motion.velocity
            self.assertTrue(-5.0 <= v <= 10.0, msg=f"frame {frame}: v={v}")
            # Below friction the velocity is exactly zero, never a tiny residue
            self.assertTrue(v == 0.0 or abs(v) >= 0.08, msg=f"frame {frame}: v={v}")
            self.assertTrue(0.0 <= car.heading < 360.0, msg=f"frame {frame}: h={car.heading}")

    def test_moves_toward_negative_y(self) -> None:
        car = Car(0.0, 100.0, DIMS, PlayerControl(), motion=Motion(velocity=5.0, friction=0.0))
        car.move(Controls())
        self.assertAlmostEqual(car.x, 0.0)
        self.assertAlmostEqual(car.y, 95.0)


class CollisionTests(unittest.TestCase):
    def test_head_on_overlap_damages(self) -> None:
        road = wide_road()
        a = Car(0.0, 0.0, DIMS, PlayerControl())
        b = Car(0.0, 30.0, DIMS, PlayerControl(), heading=180.0)
        crashed = a.update(road, [b.snapshot()])
        self.assertTrue(crashed)
        self.assertTrue(a.damaged)
        # Only the first transition is reported
        self.assertFalse(a.update(road, [b.snapshot()]))

    def test_own_snapshot_is_ignored(self) -> None:
        car = Car(0.0, 0.0, DIMS, PlayerControl())
        self.assertFalse(car.update(wide_road(), [car.snapshot()]))
        self.assertFalse(car.damaged)

    def test_border_contact_damages(self) -> None:
        road = wide_road()
        car = Car(road.left + 5.0, 0.0, DIMS, PlayerControl())
        self.assertTrue(car.update(road))

    def test_damage_cancels_lane_change_and_controls(self) -> None:
        car = Car(0.0, 0.0, DIMS, PlayerControl(), heading=10.0)
        car.target_lane = 2
        car.controls = Controls(forward=True)
        self.assertTrue(car.mark_damaged())
        self.assertIsNone(car.target_lane)
        self.assertEqual(car.heading, 0.0)
        self.assertEqual(car.controls.as_tuple(), (False, False, False, False))
        self.assertFalse(car.mark_damaged())

    def test_score_grows_while_alive(self) -> None:
        road = wide_road()
        car = Car(0.0, 0.0, DIMS, PlayerControl())
        car.update(road)
        self.assertEqual(car.score, 2)
        car.mark_damaged()
        car.update(road)
        self.assertEqual(car.score, 2)


class DimensionsTests(unittest.TestCase):
    def test_scale_out_of_range(self) -> None:
        for scale in (0.0, -0.5, 1.0, 1.5):
            with self.assertRaises(ConfigurationError):
                Dimensions.from_sprite(194, 380, scale=scale)

    def test_no_scale_keeps_the_sprite_size(self) -> None:
        dims = Dimensions.from_sprite(194, 380)
        self.assertEqual((dims.width, dims.height), (194, 380))

    def test_crop_then_scale(self) -> None:
        dims = Dimensions.from_sprite(194, 380, crop=(100, 200), scale=0.5)
        self.assertEqual((dims.width, dims.height), (50.0, 100.0))

    def test_immutable(self) -> None:
        with self.assertRaises(AttributeError):
            DIMS.width = 10.0


class NeuralCarTests(unittest.TestCase):
    def test_brain_width_must_match_rays(self) -> None:
        brain = NeuralNetwork((3, 4)).randomize(np.random.default_rng(0))
        with self.assertRaises(ConfigurationError):
            make_neural_car(0.0, 0.0, DIMS, brain, [SensorConfig(ray_count=5)])

    def test_update_drives_from_brain(self) -> None:
        brain = NeuralNetwork((5, 6, 4)).randomize(np.random.default_rng(1))
        car = make_neural_car(0.0, 0.0, DIMS, brain, [SensorConfig()])
        car.update(wide_road())
        self.assertEqual(len(car.readings), 5)
        self.assertEqual(car.kind, "neural")
        self.assertIs(car.brain, brain)


class RoadTests(unittest.TestCase):
    def test_lane_centers(self) -> None:
        road = Road(0.0, 300.0, 3)
        self.assertEqual([road.lane_center(i) for i in range(3)], [-100.0, 0.0, 100.0])
        for got, expected in zip(road.lane_dividers(), (-50.0, 50.0)):
            self.assertAlmostEqual(got, expected)

    def test_invalid_lane(self) -> None:
        road = Road(0.0, 300.0, 3)
        for lane in (-1, 3):
            with self.assertRaises(LaneIndexError):
                road.lane_center(lane)

    def test_borders_span_the_road_edges(self) -> None:
        road = Road(500.0, 200.0, 2)
        left, right = road.borders
        self.assertEqual(left.start.x, 400.0)
        self.assertEqual(right.start.x, 600.0)
        self.assertLess(left.start.y, -100_000)
        self.assertGreater(left.end.y, 100_000)

    def test_bad_road(self) -> None:
        with self.assertRaises(ConfigurationError):
            Road(0.0, 0.0, 3)
        with self.assertRaises(ConfigurationError):
            Road(0.0, 100.0, 0)


if __name__ == "__main__":
    unittest.main()
