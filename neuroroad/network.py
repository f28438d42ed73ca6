"""
Fixed-topology feed-forward network used as a car's brain.

A network is a list of :class:`Level` objects. Each level holds a bias
vector and a weight matrix (one row per output neuron) and squashes its
output with ``tanh``. Offspring are produced by blending ("pruning") a
freshly randomized network toward a proven parent.
"""

import json
import logging
import os

import numpy as np

from .errors import ConfigurationError, NetworkLoadError

log = logging.getLogger("network")


def _default_rng(rng):
    return rng if rng is not None else np.random.default_rng()


class Level:
    """One dense layer: ``outputs = tanh(weights @ inputs + biases)``."""

    __slots__ = ['input_count', 'output_count', 'biases', 'weights']

    def __init__(self, input_count, output_count):
        if input_count < 1 or output_count < 1:
            raise ConfigurationError(f"level sizes must be positive, got {input_count}x{output_count}")
        self.input_count = int(input_count)
        self.output_count = int(output_count)
        self.biases = np.zeros(self.output_count)
        self.weights = np.zeros((self.output_count, self.input_count))

    def randomize(self, rng=None):
        rng = _default_rng(rng)
        self.weights = rng.uniform(-1.0, 1.0, size=self.weights.shape)
        self.biases = rng.uniform(-1.0, 1.0, size=self.biases.shape)

    def feed_forward(self, inputs):
        assert len(inputs) == self.input_count, (
            f"level expects {self.input_count} inputs, got {len(inputs)}")
        return np.tanh(self.weights @ np.asarray(inputs, dtype=np.float64) + self.biases)

    def copy(self):
        new = Level.__new__(Level)
        new.input_count, new.output_count = self.input_count, self.output_count
        new.biases, new.weights = self.biases.copy(), self.weights.copy()
        return new


class NeuralNetwork:
    def __init__(self, layer_sizes):
        layer_sizes = [int(n) for n in layer_sizes]
        if len(layer_sizes) < 2:
            raise ConfigurationError(f"a network needs at least two layer sizes, got {layer_sizes}")
        self.levels = [Level(layer_sizes[i], layer_sizes[i + 1]) for i in range(len(layer_sizes) - 1)]

    @property
    def layer_sizes(self):
        return (self.levels[0].input_count, *(lv.output_count for lv in self.levels))

    @property
    def input_count(self):
        return self.levels[0].input_count

    @property
    def output_count(self):
        return self.levels[-1].output_count

    def randomize(self, rng=None):
        """Draw every weight and bias uniformly from [-1, 1]."""
        rng = _default_rng(rng)
        for level in self.levels:
            level.randomize(rng)
        return self

    def feed_forward(self, inputs):
        """Evaluate the network. Raises ``AssertionError`` on a width mismatch."""
        outputs = self.levels[0].feed_forward(inputs)
        for level in self.levels[1:]:
            outputs = level.feed_forward(outputs)
        return outputs

    def prune(self, base, t):
        """Blend every weight and bias toward ``base`` by factor ``t``.

        ``t = 0`` keeps this network, ``t = 1`` turns it into a copy of ``base``.
        """
        if not 0.0 <= t <= 1.0:
            raise ConfigurationError(f"prune factor must be in [0, 1], got {t}")
        if base.layer_sizes != self.layer_sizes:
            raise ConfigurationError(
                f"cannot prune {self.layer_sizes} toward {base.layer_sizes}")
        for level, ref in zip(self.levels, base.levels):
            # Weighted form of lerp: exact at both t = 0 and t = 1
            level.weights = level.weights * (1.0 - t) + ref.weights * t
            level.biases = level.biases * (1.0 - t) + ref.biases * t
        return self

    def copy(self):
        new = NeuralNetwork.__new__(NeuralNetwork)
        new.levels = [level.copy() for level in self.levels]
        return new

    @classmethod
    def offspring(cls, layer_sizes, base=None, t=1.0, rng=None):
        """Random network pruned toward ``base``; plain random when there is no base."""
        child = cls(layer_sizes).randomize(rng)
        if base is not None:
            child.prune(base, t)
        return child

    # ---------------- persistence ----------------

    def to_dict(self):
        return {
            "levels": [
                {"biases": level.biases.tolist(), "weights": level.weights.tolist()}
                for level in self.levels
            ]
        }

    @classmethod
    def from_dict(cls, data):
        levels_data = data["levels"]
        if not isinstance(levels_data, list) or not levels_data:
            raise ConfigurationError("checkpoint has no levels")

        levels = []
        for i, entry in enumerate(levels_data):
            biases = np.asarray(entry["biases"], dtype=np.float64)
            weights = np.asarray(entry["weights"], dtype=np.float64)
            if biases.ndim != 1 or weights.ndim != 2 or weights.shape[0] != biases.shape[0]:
                raise ConfigurationError(f"level {i} has inconsistent shapes")
            if levels and levels[-1].output_count != weights.shape[1]:
                raise ConfigurationError(f"level {i} does not chain onto level {i - 1}")
            level = Level(weights.shape[1], weights.shape[0])
            level.biases, level.weights = biases, weights
            levels.append(level)

        net = cls.__new__(cls)
        net.levels = levels
        return net

    def save(self, path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f)

    @classmethod
    def load(cls, path):
        """Read a checkpoint. Raises :class:`NetworkLoadError` on any failure."""
        try:
            with open(path, "r") as f:
                data = json.load(f)
            return cls.from_dict(data)
        except FileNotFoundError:
            raise NetworkLoadError(path, "file not found")
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise NetworkLoadError(path, e)


def load_matching(path, layer_sizes):
    """Load ``path`` if it holds a network of ``layer_sizes``; otherwise log why and return ``None``."""
    try:
        net = NeuralNetwork.load(path)
    except NetworkLoadError as e:
        log.warning("%s; starting without it", e)
        return None
    if net.layer_sizes != tuple(layer_sizes):
        log.warning("ignoring %s: layers %s, expected %s", path, net.layer_sizes, tuple(layer_sizes))
        return None
    return net
