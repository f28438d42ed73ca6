"""
World stepping, camera, player input, rollover, config and CLI wiring.
"""

from __future__ import annotations

import os
import tempfile
import unittest

import numpy as np

from neuroroad.cli import build_parser, config_from_args, main
from neuroroad.config import SimConfig
from neuroroad.errors import ConfigurationError
from neuroroad.network import NeuralNetwork
from neuroroad.simulation import Simulation


def small_config(**overrides) -> SimConfig:
    base = SimConfig(population_size=5, traffic_size=3, checkpoint_dir=None, seed=3)
    return base.with_overrides(**overrides)


class SimulationTests(unittest.TestCase):
    def test_step_advances_frame_and_snapshot(self) -> None:
        with Simulation(small_config()) as sim:
            for _ in range(20):
                sim.step()
            snap = sim.snapshot()
        self.assertEqual(snap.frame, 20)
        self.assertEqual(len(snap.cars), 8)
        self.assertEqual(snap.population, 5)
        self.assertLessEqual(sum(v.is_best for v in snap.cars), 1)
        self.assertEqual(sum(v.kind == "scripted" for v in snap.cars), 3)
        for view in snap.cars:
            self.assertEqual(len(view.hitbox), 10)

    def test_camera_follows_leader(self) -> None:
        with Simulation(small_config()) as sim:
            sim.step()
            self.assertIsNotNone(sim.state.leader_y)
            self.assertAlmostEqual(sim.camera_offset, sim.state.leader_y - 800 * 0.7)

    def test_same_seed_same_world(self) -> None:
        def positions(sim):
            return [(v.x, v.y) for v in sim.snapshot().cars]

        with Simulation(small_config()) as a, Simulation(small_config()) as b:
            for _ in range(15):
                a.step()
                b.step()
            self.assertEqual(positions(a), positions(b))

    def test_player_drives_forward(self) -> None:
        with Simulation(small_config(with_player=True)) as sim:
            start_y = sim.player.y
            sim.set_player_controls("forward", True)
            for _ in range(10):
                sim.step()
            self.assertLess(sim.player.y, start_y)
            self.assertEqual(sim.snapshot().cars[-1].kind, "player")
            # Camera follows the player when there is one
            self.assertAlmostEqual(sim.camera_offset, sim.player.y - 800 * 0.7)

            sim.reset_player()
            self.assertEqual(sim.player.y, start_y)
            self.assertEqual(sim.player.motion.velocity, 0.0)

    def test_generation_rollover(self) -> None:
        with Simulation(small_config(generation_frames=5)) as sim:
            for _ in range(5):
                sim.step()
            self.assertEqual(sim.state.generation, 2)
            self.assertEqual(sim.camera_offset, 0.0)

    def test_headless_run(self) -> None:
        with Simulation(small_config()) as sim:
            state = sim.run(frames=3, realtime=False)
        self.assertEqual(state.frame, 3)

    def test_checkpoints_seed_the_roster(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = small_config(checkpoint_dir=tmp, checkpoint_interval=0)
            saved = NeuralNetwork(config.layer_sizes).randomize(np.random.default_rng(1))
            saved.save(os.path.join(tmp, "best.json"))

            with Simulation(config) as sim:
                self.assertEqual(sim.state.best.owner, -1)
                for a in sim.population.agents:
                    diff = np.max(np.abs(a.brain.levels[0].weights - saved.levels[0].weights))
                    self.assertLessEqual(diff, 2 * (1 - config.explore_blend) + 1e-12)
                sim.step()

            # Closing writes the tracked brains back
            self.assertTrue(os.path.exists(os.path.join(tmp, "second_best.json")))

    def test_invalid_config(self) -> None:
        with self.assertRaises(ConfigurationError):
            Simulation(small_config(scale=2.0))


class ConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = SimConfig().validate()
        self.assertEqual(config.layer_sizes, (5, 6, 4))
        self.assertAlmostEqual(config.effective_road_width, 1080 * 0.33)

    def test_overrides_skip_none(self) -> None:
        config = SimConfig().with_overrides(population_size=7, seed=None)
        self.assertEqual(config.population_size, 7)
        self.assertIsNone(config.seed)

    def test_out_of_range_values(self) -> None:
        for overrides in ({"population_size": 0}, {"mutation_blend": 1.5},
                          {"road_lanes": 0}, {"workers": 0}, {"dt": 0.0}):
            with self.assertRaises(ConfigurationError, msg=str(overrides)):
                SimConfig().with_overrides(**overrides).validate()


class CliTests(unittest.TestCase):
    def test_flags_map_to_config(self) -> None:
        args = build_parser().parse_args(
            ["--population", "7", "--traffic", "2", "--batched", "--no-checkpoints", "--headless"])
        config = config_from_args(args)
        self.assertEqual(config.population_size, 7)
        self.assertEqual(config.traffic_size, 2)
        self.assertTrue(config.batched)
        self.assertFalse(config.checkpoint_dir)
        self.assertFalse(config.with_player)

    def test_headless_main(self) -> None:
        code = main(["--headless", "--fast", "--frames", "2", "--population", "3",
                     "--traffic", "1", "--no-checkpoints", "--log-file", "", "--log-level", "WARNING"])
        self.assertEqual(code, 0)

    def test_bad_config_exits_non_zero(self) -> None:
        code = main(["--headless", "--population", "0", "--no-checkpoints",
                     "--log-file", "", "--log-level", "ERROR"])
        self.assertEqual(code, 2)


if __name__ == "__main__":
    unittest.main()
