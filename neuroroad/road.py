"""Straight multi-lane road: two border segments and lane centers."""

from .config import ROAD_INFINITY
from .errors import ConfigurationError, LaneIndexError
from .geometry import Point, Segment, lerp


class Road:
    def __init__(self, x, width, lanes):
        if width <= 0:
            raise ConfigurationError(f"road width must be positive, got {width}")
        if lanes < 1:
            raise ConfigurationError(f"road needs at least one lane, got {lanes}")
        self.x = float(x)
        self.width = float(width)
        self.lanes = int(lanes)
        self.left = self.x - self.width / 2
        self.right = self.x + self.width / 2
        self.top = -ROAD_INFINITY
        self.bottom = ROAD_INFINITY
        # Borders are effectively infinite along y
        self.borders = (
            Segment(Point(self.left, self.top / 2), Point(self.left, self.bottom / 2)),
            Segment(Point(self.right, self.top / 2), Point(self.right, self.bottom / 2)),
        )

    @property
    def lane_width(self):
        return self.width / self.lanes

    def lane_center(self, lane):
        if not 0 <= lane < self.lanes:
            raise LaneIndexError(lane, self.lanes)
        return self.left + self.lane_width / 2 + lane * self.lane_width

    def lane_dividers(self):
        """x of the dashed lines between lanes."""
        return [lerp(self.left, self.right, i / self.lanes) for i in range(1, self.lanes)]

    def random_lane(self, rng):
        return rng.randrange(self.lanes)
