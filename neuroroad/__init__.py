"""
neuroroad
=========
Self-driving cars on an endless road, steered by small neural networks and
improved by keeping and blending the best brains.

Modules
-------
geometry       Segment intersection and interpolation.
network        Feed-forward tanh network, prune/blend, JSON checkpoints.
batched        Whole-roster evaluation with torch.
road           Lanes and borders.
sensor         Ray fans and their readings.
controls       Player, neural and scripted control strategies.
car            Agent pose, motion, hitbox and frame update.
traffic        Scripted traffic spawning and recycling.
population     Roster, best tracking, respawns, checkpoints.
simulation     World state and the fixed-timestep loop.
viewer         Pygame window.
cli            Command-line entry point.
"""

from .config import SensorConfig, SimConfig
from .errors import ConfigurationError, LaneIndexError, NetworkLoadError, NeuroroadError
from .network import NeuralNetwork
from .simulation import Simulation

__all__ = [
    "ConfigurationError",
    "LaneIndexError",
    "NetworkLoadError",
    "NeuralNetwork",
    "NeuroroadError",
    "SensorConfig",
    "SimConfig",
    "Simulation",
]
