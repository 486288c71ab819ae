"""Soccer field geometry: landmark positions and reference line segments."""

from __future__ import annotations

import random
from dataclasses import dataclass

from fieldlocalizer.model import FeatureType, Particle

Point = tuple[float, float]
Segment = tuple[float, float, float, float]

_CM_TO_M = 0.01


@dataclass(frozen=True)
class FieldGeometry:
    """Field dimensions in centimetres.

    Monitor coordinates put the origin at the outer corner of the border
    strip, so the playing field spans ``border_strip_width`` to
    ``border_strip_width + field_length`` along x.
    """

    field_length: int = 900
    field_width: int = 600
    border_strip_width: int = 100
    goal_area_length: int = 100
    goal_area_width: int = 300
    center_circle_diameter: int = 150
    goal_width: int = 260
    penalty_mark_distance: int = 150

    def __post_init__(self) -> None:
        for name in ("field_length", "field_width", "center_circle_diameter", "goal_width"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("border_strip_width", "goal_area_length", "goal_area_width",
                     "penalty_mark_distance"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    def landmarks(self) -> dict[FeatureType, tuple[Point, ...]]:
        """Known landmark positions in metres, keyed by feature type."""
        b = self.border_strip_width
        length = self.field_length
        width = self.field_width
        gal = self.goal_area_length
        ga_low = b + ((width - self.goal_area_width) >> 1)
        ga_high = b + ((width + self.goal_area_width) >> 1)
        mid_x = b + (length >> 1)

        def metres(x: int, y: int) -> Point:
            return (x * _CM_TO_M, y * _CM_TO_M)

        corners = (
            metres(b, b),
            metres(b, b + width),
            metres(b + gal, ga_low),
            metres(b + gal, ga_high),
            metres(b + length - gal, ga_low),
            metres(b + length - gal, ga_high),
            metres(b + length, b),
            metres(b + length, b + width),
        )
        junctions = (
            metres(b, ga_low),
            metres(b, ga_high),
            metres(mid_x, b),
            metres(mid_x, b + width),
            metres(b + length, ga_low),
            metres(b + length, ga_high),
        )
        crosses = (
            metres(mid_x, b + ((width - self.center_circle_diameter) >> 1)),
            metres(mid_x, b + ((width + self.center_circle_diameter) >> 1)),
        )
        circle = (metres(mid_x, b + (width >> 1)),)
        return {
            FeatureType.L_CORNER: corners,
            FeatureType.T_JUNCTION: junctions,
            FeatureType.X_CROSS: crosses,
            FeatureType.CENTER_CIRCLE: circle,
        }

    def line_segments(self) -> tuple[Segment, ...]:
        """Reference field lines in metres as (x1, y1, x2, y2).

        The first five are vertical lines ordered along x, the remaining six
        horizontal lines; each runs from its lower to its higher coordinate.
        """
        marks = self.landmarks()
        lc = marks[FeatureType.L_CORNER]
        tj = marks[FeatureType.T_JUNCTION]

        def seg(a: Point, b: Point) -> Segment:
            return (a[0], a[1], b[0], b[1])

        return (
            seg(lc[0], lc[1]),
            seg(lc[2], lc[3]),
            seg(tj[2], tj[3]),
            seg(lc[4], lc[5]),
            seg(lc[6], lc[7]),
            seg(lc[0], lc[6]),
            seg(tj[0], lc[2]),
            (lc[4][0], lc[4][1], tj[4][0], lc[4][1]),
            seg(tj[1], lc[3]),
            seg(lc[5], tj[5]),
            seg(lc[1], lc[7]),
        )

    def random_particle(self, rng: random.Random, weight: float) -> Particle:
        """Draw a particle uniformly over the playing field with integer coordinates."""
        b = self.border_strip_width
        return Particle(
            x=float(rng.randint(b, b + self.field_length)),
            y=float(rng.randint(b, b + self.field_width)),
            theta=float(rng.randint(0, 360)),
            weight=weight,
        )