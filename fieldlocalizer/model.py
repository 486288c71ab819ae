"""Core value types shared by the localizer: particles, poses and field features."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable


@dataclass(slots=True)
class Particle:
    """A pose hypothesis on the field in centimetres and degrees, with its weight."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0
    weight: float = 0.0


@dataclass(slots=True)
class Pose:
    """An estimated robot pose: position in centimetres, heading in degrees."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0


class FeatureType(IntEnum):
    """Kinds of field feature that the measurement model knows how to match."""

    L_CORNER = 0
    T_JUNCTION = 1
    X_CROSS = 2
    CENTER_CIRCLE = 3
    LINE = 4

    @property
    def is_landmark(self) -> bool:
        """Point landmarks are matched by range and bearing, lines by segment fit."""
        return self is not FeatureType.LINE


@dataclass(slots=True)
class Feature:
    """An observed feature in robot-local coordinates.

    For lines the four parameters are the two end points (x1, y1, x2, y2);
    for the centre circle they are centre x, centre y, radius and distance.
    """

    param1: float = 0.0
    param2: float = 0.0
    param3: float = 0.0
    param4: float = 0.0
    orientation: float = 0.0
    feature_type: FeatureType = FeatureType.LINE


def best_particle(particles: Iterable[Particle]) -> Particle:
    """Return a copy of the first particle with the highest positive weight.

    When no particle has a weight above zero, a zeroed particle is returned.
    """
    best = Particle()
    max_weight = 0.0
    for particle in particles:
        if particle.weight > max_weight:
            max_weight = particle.weight
            best = dataclasses.replace(particle)
    return best