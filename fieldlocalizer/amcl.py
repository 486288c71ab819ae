"""Adaptive Monte Carlo localisation over a soccer field."""

from __future__ import annotations

import dataclasses
import math
import random
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Sequence

from fieldlocalizer.field import FieldGeometry
from fieldlocalizer.model import Feature, FeatureType, Particle, Pose, best_particle

_RESET_THRESHOLD = 0.25
_LOCAL_RESET_PROB = 0.05
_LOCAL_RESET_SPAN = 100
_CENTERED_RADIUS = 25.0
_CENTERED_RATIO = 0.3
_LOST_COORDINATE = 999.0
_MOTION_NOISE_STD = 1.75
_CIRCLE_PRESENT = 999
_VERTICAL_SEGMENTS = 5


@dataclass(frozen=True)
class AmclParams:
    """Filter settings: particle count, averaging rates and heading variance."""

    num_particles: int = 300
    short_term_rate: float = 0.1
    long_term_rate: float = 0.001
    gy_var: float = 0.5

    def __post_init__(self) -> None:
        if self.num_particles <= 0:
            raise ValueError("num_particles must be positive")
        for name in ("short_term_rate", "long_term_rate"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1]")
        if self.gy_var <= 0.0:
            raise ValueError("gy_var must be positive")


@dataclass(frozen=True)
class SensorModel:
    """Likelihoods of range, bearing and heading deviations."""

    range_sigma: float = 0.5
    beam_sigma: float = 0.5

    def __post_init__(self) -> None:
        if self.range_sigma <= 0.0 or self.beam_sigma <= 0.0:
            raise ValueError("sigmas must be positive")

    @staticmethod
    def _gaussian(deviation: float, variance: float) -> float:
        return math.exp(-deviation * deviation / (2.0 * variance))

    def range_likelihood(self, deviation: float) -> float:
        """Likelihood of a range error in metres."""
        return self._gaussian(deviation, self.range_sigma ** 2)

    def beam_likelihood(self, deviation: float) -> float:
        """Likelihood of a bearing error in radians."""
        return self._gaussian(deviation, self.beam_sigma ** 2)

    def heading_likelihood(self, deviation: float, variance: float) -> float:
        """Likelihood of a deviation from the gyro heading in radians."""
        return self._gaussian(deviation, variance)


@dataclass
class _Match:
    range_dev: float
    beam_dev: float
    offset: float = 0.0
    correspondence: float = -1.0


class AMCL:
    """Particle filter that tracks the robot pose from odometry and field features.

    ``odometry`` holds pending (dx, dy) displacements in centimetres; only the
    front entry is consumed by the filter. ``heading_change`` is the gyro
    rotation in radians since the last update, and ``gyro_heading`` the
    absolute gyro heading in degrees.
    """

    def __init__(
        self,
        field: FieldGeometry | None = None,
        params: AmclParams | None = None,
        sensor_model: SensorModel | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.field = field or FieldGeometry()
        self.params = params or AmclParams()
        self.sensor_model = sensor_model or SensorModel()
        self.rng = rng or random.Random()

        self._landmarks = self.field.landmarks()
        self._segments = self.field.line_segments()

        self.features_present = 0
        self.short_term_avg = 0.0
        self.long_term_avg = 0.0
        self.last_weight_avg = 0.0
        self.resetting = False
        self.gyro_heading = 0.0
        self.heading_change = 0.0
        self.odometry: deque[tuple[float, float]] = deque()

        start = float(self.field.border_strip_width >> 1)
        self.robot_state = Pose(start, start, 0.0)
        self.last_robot_state = dataclasses.replace(self.robot_state)

        self._best = Particle()
        self._first_measurement = True
        self.particles: list[Particle] = []
        self.initialize_particles()

    def initialize_particles(self) -> None:
        """Spread the particles uniformly over the field with equal weights."""
        n = self.params.num_particles
        weight = 1.0 / n
        self.particles = [self.field.random_particle(self.rng, weight) for _ in range(n)]

    def resize_particles(self, num_particles: int) -> None:
        """Change the particle count, keeping existing particles and drawing new ones."""
        new_params = dataclasses.replace(self.params, num_particles=num_particles)
        old_count = self.params.num_particles
        if num_particles != old_count:
            kept = self.particles[:num_particles]
            if num_particles > old_count:
                weight = 1.0 / num_particles
                kept.extend(
                    self.field.random_particle(self.rng, weight)
                    for _ in range(num_particles - len(kept))
                )
            self.particles = kept
        self.params = new_params

    def _reset_probability(self) -> float:
        if self.long_term_avg == 0.0:
            return 0.0
        prob = 1.0 - self.short_term_avg / self.long_term_avg
        if math.isnan(prob):
            return 0.0
        return max(0.0, prob)

    def _reset_region(self) -> tuple[float, tuple[int, int], tuple[int, int]]:
        prob = self._reset_probability()
        self.resetting = prob > _RESET_THRESHOLD
        if self.features_present == 1:
            lx, ly = self.last_robot_state.x, self.last_robot_state.y
            return (
                min(_LOCAL_RESET_PROB, prob),
                (int(lx - _LOCAL_RESET_SPAN), int(lx + _LOCAL_RESET_SPAN)),
                (int(ly - _LOCAL_RESET_SPAN), int(ly + _LOCAL_RESET_SPAN)),
            )
        b = self.field.border_strip_width
        return prob, (b, b + self.field.field_length), (b, b + self.field.field_width)

    def _random_in(self, x_range: tuple[int, int], y_range: tuple[int, int]) -> Particle:
        return Particle(
            x=float(self.rng.randint(*x_range)),
            y=float(self.rng.randint(*y_range)),
            theta=float(self.rng.randint(0, 360)),
            weight=0.0,
        )

    def resampling_wheel(self, particles: Sequence[Particle]) -> tuple[list[Particle], Particle]:
        """Resample with the resampling wheel, injecting random particles when lost.

        Returns the new particles and a copy of the best particle before resampling.
        """
        if not particles:
            raise ValueError("cannot resample an empty particle set")
        n = self.params.num_particles
        count = len(particles)
        index = self.rng.randint(0, n - 1) % count
        best = best_particle(particles)
        max_weight = best.weight
        prob, x_range, y_range = self._reset_region()

        beta = 0.0
        resampled: list[Particle] = []
        for _ in range(n):
            if self.rng.random() < prob:
                resampled.append(self._random_in(x_range, y_range))
                continue
            beta += self.rng.uniform(0.0, 2.0 * max_weight)
            while beta > particles[index].weight:
                beta -= particles[index].weight
                index = (index + 1) % count
            resampled.append(dataclasses.replace(particles[index]))
        return resampled, best

    def low_variance_resampling(
        self, particles: Sequence[Particle]
    ) -> tuple[list[Particle], Particle]:
        """Systematic resampling, injecting random particles when lost.

        The weights must be normalised; a set without positive weight is rejected.
        """
        if not particles:
            raise ValueError("cannot resample an empty particle set")
        if not sum(p.weight for p in particles) > 0.0:
            raise ValueError("particle weights must have a positive sum")
        n = self.params.num_particles
        count = len(particles)
        best = best_particle(particles)
        r = self.rng.uniform(0.0, 1.0 / n)
        cumulative = particles[0].weight
        idx = 0
        prob, x_range, y_range = self._reset_region()

        resampled: list[Particle] = []
        for i in range(n):
            if self.rng.random() < prob:
                resampled.append(self._random_in(x_range, y_range))
                continue
            target = r + i / n
            while target > cumulative:
                idx = (idx + 1) % count
                cumulative += particles[idx].weight
            resampled.append(dataclasses.replace(particles[idx]))
        return resampled, best

    def _odometry_displacement(self) -> tuple[float, float]:
        if not self.odometry:
            return 0.0, 0.0
        dx, dy = self.odometry[0]
        return dx, -dy

    def calc_robot_pose(self, best: Particle) -> Pose:
        """Estimate the robot pose from particles clustered around the best one."""
        centered = 0
        total_x = total_y = total_sin = total_cos = 0.0
        for p in self.particles:
            if math.hypot(best.x - p.x, best.y - p.y) < _CENTERED_RADIUS:
                centered += 1
                total_x += p.x
                total_y += p.y
                rad = math.radians(p.theta)
                total_sin += math.sin(rad)
                total_cos += math.cos(rad)

        state = self.robot_state
        if self.resetting:
            state.x = _LOST_COORDINATE
            state.y = _LOST_COORDINATE
        elif centered > _CENTERED_RATIO * self.params.num_particles:
            state.theta = math.degrees(math.atan2(total_sin, total_cos))
            state.x = total_x / centered
            state.y = total_y / centered
            self.last_robot_state = dataclasses.replace(state)
        else:
            dx, dy = self._odometry_displacement()
            trans = math.hypot(dx, dy)
            heading = math.atan2(total_sin, total_cos)
            state.x = self.last_robot_state.x + trans * math.cos(heading)
            state.y = self.last_robot_state.y + trans * math.sin(heading)
            state.theta = math.degrees(heading)
            self.last_robot_state = dataclasses.replace(state)

        self.resetting = False
        return dataclasses.replace(state)

    def sample_motion_model_odometry(
        self, particles: Iterable[Particle], heading_change: float
    ) -> list[Particle]:
        """Move particles by the pending odometry and a heading change in radians."""
        dx, dy = self._odometry_displacement()
        dtrans = math.hypot(dx, dy)
        drot = math.degrees(heading_change)
        std = _MOTION_NOISE_STD if self.features_present > 0 else 0.0

        moved: list[Particle] = []
        for p in particles:
            rad = math.radians(p.theta)
            x = p.x + dtrans * math.cos(rad) + self.rng.gauss(0.0, std)
            y = p.y + dtrans * math.sin(rad) + self.rng.gauss(0.0, std)
            theta = p.theta + drot + self.rng.gauss(0.0, std)
            if theta < 0.0:
                theta += 360.0
            moved.append(Particle(x, y, theta, p.weight))
        return moved

    def _match_landmark(self, feature: Feature, ftype: FeatureType,
                        pos_x: float, pos_y: float, theta: float) -> _Match:
        match = _Match(float(self.field.field_length), math.pi / 2)
        optimal = math.inf
        map_theta = int(theta - 2.0 * math.pi if theta > math.pi else theta)
        for lx, ly in self._landmarks[ftype]:
            delta_x = lx - pos_x
            delta_y = ly - pos_y
            diff = abs(math.hypot(delta_x, delta_y) - feature.param4)
            if diff < optimal:
                beam = math.atan2(delta_y, delta_x) - map_theta
                match = _Match(diff, abs(beam - feature.orientation))
                optimal = diff
        return match

    def _match_line(self, feature: Feature, pos_x: float, pos_y: float,
                    theta: float) -> _Match:
        match = _Match(float(self.field.field_length), math.pi / 2)
        c_t, s_t = math.cos(theta), math.sin(theta)
        ax = pos_x + feature.param2 * c_t - feature.param1 * s_t
        ay = pos_y + feature.param2 * s_t + feature.param1 * c_t
        bx = pos_x + feature.param4 * c_t - feature.param3 * s_t
        by = pos_y + feature.param4 * s_t + feature.param3 * c_t
        to_vertical = min(abs(math.pi / 2 - theta), abs(3.0 * math.pi / 2 - theta))
        to_horizontal = min(abs(theta), abs(2.0 * math.pi - theta), abs(math.pi - theta))
        diff_v = abs(to_vertical - feature.orientation)
        diff_h = abs(to_horizontal - feature.orientation)

        optimal = math.inf
        for j, (x1, y1, x2, y2) in enumerate(self._segments):
            if j < _VERTICAL_SEGMENTS:
                off1 = max(0.0, y1 - min(ay, by))
                off2 = max(0.0, max(ay, by) - y2)
                diff = abs((max(ax, bx) - x2) + (min(ax, bx) - x1))
                angle = diff_v
            else:
                off1 = max(0.0, x1 - min(ax, bx))
                off2 = max(0.0, max(ax, bx) - x2)
                diff = abs((max(ay, by) - y2) + (min(ay, by) - y1))
                angle = diff_h
            cost = diff + off1 + off2 + angle
            if cost < optimal:
                optimal = cost
                match = _Match(diff + off1 + off2, angle, off1 + off2, float(j))
        return match

    def _visual_weight(self, matches: Sequence[_Match]) -> float:
        top = [0.0, 0.0, 0.0]
        acquired = [False, False, False]
        used = 0
        for m in matches:
            weight = (self.sensor_model.range_likelihood(m.range_dev)
                      * self.sensor_model.beam_likelihood(m.beam_dev))
            is_landmark = m.correspondence == -1.0
            if weight > top[0] and not acquired[0]:
                acquired[0] = is_landmark
                top[1] = top[0]
                top[0] = weight
                used += 1
            elif weight > top[1] and not acquired[1]:
                acquired[1] = is_landmark
                top[2] = top[1]
                top[1] = weight
                used += 1
            elif weight > top[2] and not acquired[2]:
                acquired[2] = is_landmark
                top[2] = weight
                used += 1
        used = max(1, min(used, 3))
        return sum(top[:used]) / used

    def measurement_model(
        self, particles: Sequence[Particle], features: Sequence[Feature]
    ) -> tuple[list[Particle], float]:
        """Weigh particles against observed features (centimetres and degrees).

        Returns the particles with normalised weights and the mean raw weight.
        Without features the particles are returned unchanged with the last mean.
        """
        if not features:
            return [dataclasses.replace(p) for p in particles], self.last_weight_avg

        scaled = [
            (
                Feature(f.param1 * 0.01, f.param2 * 0.01, f.param3 * 0.01, f.param4 * 0.01,
                        math.radians(f.orientation), f.feature_type),
                FeatureType(f.feature_type),
            )
            for f in features
        ]
        heading = math.radians(self.gyro_heading)

        weighted: list[Particle] = []
        total = 0.0
        for p in particles:
            pos_x, pos_y = p.x * 0.01, p.y * 0.01
            theta = math.radians(p.theta)
            matches = [
                self._match_landmark(f, ftype, pos_x, pos_y, theta) if ftype.is_landmark
                else self._match_line(f, pos_x, pos_y, theta)
                for f, ftype in scaled
            ]
            gy_dev = abs(theta - heading)
            if gy_dev > math.pi:
                gy_dev = 2.0 * math.pi - gy_dev
            weight = self._visual_weight(matches) * self.sensor_model.heading_likelihood(
                gy_dev, self.params.gy_var)
            total += weight
            weighted.append(Particle(p.x, p.y, p.theta, weight))

        weight_sum = sum(p.weight for p in weighted)
        for p in weighted:
            # an all-zero weighting yields undefined weights, caught by the caller
            p.weight = p.weight / total if total != 0.0 else math.nan
        return weighted, weight_sum / self.params.num_particles

    def update(self, features: Sequence[Feature]) -> Pose:
        """Run one filter step with the features seen in this frame.

        A centre circle among the features marks the frame as strongly
        observed; otherwise the number of features is recorded.
        """
        if any(FeatureType(f.feature_type) is FeatureType.CENTER_CIRCLE for f in features):
            self.features_present = _CIRCLE_PRESENT
        else:
            self.features_present = len(features)

        self.particles = self.sample_motion_model_odometry(self.particles, self.heading_change)
        self.heading_change = 0.0

        if self.features_present > 0:
            self.particles, weight_avg = self.measurement_model(self.particles, features)
            if math.isnan(weight_avg):
                weight_avg = self.last_weight_avg
            else:
                if self._first_measurement:
                    self.short_term_avg = weight_avg
                    self.long_term_avg = weight_avg
                    self._first_measurement = False
                self.last_weight_avg = weight_avg
            self.short_term_avg += self.params.short_term_rate * (weight_avg - self.short_term_avg)
            self.long_term_avg += self.params.long_term_rate * (weight_avg - self.long_term_avg)
            self.particles, self._best = self.resampling_wheel(self.particles)

        return self.calc_robot_pose(self._best)