"""
Batched torch inference must agree with the per-network numpy path.
"""

from __future__ import annotations

import unittest

import numpy as np

from neuroroad.batched import BatchedBrains
from neuroroad.errors import ConfigurationError
from neuroroad.network import NeuralNetwork

SIZES = (5, 6, 4)


class BatchedBrainsTests(unittest.TestCase):
    def setUp(self) -> None:
        rng = np.random.default_rng(42)
        self.nets = [NeuralNetwork(SIZES).randomize(rng) for _ in range(8)]
        self.inputs = rng.uniform(0.0, 1.0, size=(8, 5))

    def test_matches_feed_forward(self) -> None:
        out = BatchedBrains(self.nets).forward(self.inputs)
        self.assertEqual(out.shape, (8, 4))
        for net, row, got in zip(self.nets, self.inputs, out):
            np.testing.assert_allclose(got, net.feed_forward(row), atol=1e-5)

    def test_masked_rows_are_zero(self) -> None:
        mask = np.array([True, False] * 4)
        out = BatchedBrains(self.nets).dispatch(self.inputs, mask).result()
        for i, (net, row) in enumerate(zip(self.nets, self.inputs)):
            if mask[i]:
                np.testing.assert_allclose(out[i], net.feed_forward(row), atol=1e-5)
            else:
                np.testing.assert_array_equal(out[i], np.zeros(4))

    def test_all_masked(self) -> None:
        out = BatchedBrains(self.nets).forward(self.inputs, np.zeros(8, dtype=bool))
        np.testing.assert_array_equal(out, np.zeros((8, 4)))

    def test_wrong_input_shape(self) -> None:
        with self.assertRaises(AssertionError):
            BatchedBrains(self.nets).forward(np.zeros((8, 3)))

    def test_rejects_mixed_topologies(self) -> None:
        other = NeuralNetwork((5, 3, 4)).randomize(np.random.default_rng(1))
        with self.assertRaises(ConfigurationError):
            BatchedBrains(self.nets + [other])
        with self.assertRaises(ConfigurationError):
            BatchedBrains([])


if __name__ == "__main__":
    unittest.main()
