"""Point-cloud helpers: radial neighbourhood search, circle candidates and line crossings."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

Cell = tuple[int, int]
LineModel = tuple[float, float]

_EPS = 1e-4
_SAMPLING_RADIUS = 30
_MIN_SLOPE_DIFF = 0.05


def _round_away(value: float) -> int:
    """Round away from zero, treating tiny magnitudes as numerical noise."""
    if value < -_EPS:
        return math.floor(value)
    if value > _EPS:
        return math.ceil(value)
    return 0


def radial_pattern(rings: int = 10) -> list[Cell]:
    """Offsets of concentric square rings around a cell, ring by ring.

    Ring ``i`` holds ``8 * i`` offsets, starting at ``(i, 0)`` and walking
    around with y pointing down the image.
    """
    if rings < 0:
        raise ValueError("rings must not be negative")
    pattern: list[Cell] = []
    for ring in range(1, rings + 1):
        total = 8 * ring
        angle_step = math.radians(360.0 / total)
        for j in range(total):
            angle = angle_step * j
            if j <= total // 8:
                divisor = math.cos(angle)
            elif j <= (3 * total) // 8:
                divisor = math.sin(angle)
            elif j <= (5 * total) // 8:
                divisor = -math.cos(angle)
            elif j < (7 * total) // 8:
                divisor = -math.sin(angle)
            else:
                divisor = math.cos(angle)
            radius = int(ring / divisor)
            est_x = radius * math.cos(angle)
            est_y = -radius * math.sin(angle)
            pattern.append((_round_away(est_x), _round_away(est_y)))
    return pattern


def arrange_target_points(points: Iterable[Cell]) -> list[Cell]:
    """Order points by x, then by y."""
    return sorted(points, key=lambda p: (p[0], p[1]))


def sample_circle_candidates(
    points: Sequence[Cell],
    pattern: Sequence[Cell],
    map_width: int,
    map_height: int,
) -> list[list[Cell]]:
    """Group points into chains that may belong to a curved line.

    Points are robot-local and are placed on a map whose origin sits at
    ``(map_width // 2, map_height // 4)``; the returned groups hold map
    coordinates. A chain is grown by following the radial neighbourhood
    pattern while the distance to the chain's reference point keeps growing.
    A chain still being grown when the points run out is not returned.
    """
    groups: list[list[Cell]] = []
    if not points:
        return groups

    origin_x = map_width >> 1
    origin_y = map_height >> 2

    def to_map(point: Cell) -> Cell:
        return (origin_x + point[0], origin_y + point[1])

    def inside(cell: Cell) -> bool:
        return 0 <= cell[0] < map_width and 0 <= cell[1] < map_height

    occupied = {cell for cell in map(to_map, points) if inside(cell)}

    collected: list[Cell] = []
    present = to_map(points[0])
    reference = present
    secondary: Cell | None = None
    secondary_spent = False
    prev_len = 0.0
    count = 1

    while count < len(points):
        next_cell: Cell | None = None

        if present not in occupied:
            present = to_map(points[count])
            reference = present
            secondary = None
            secondary_spent = False
            prev_len = 0.0
            count += 1
            continue

        occupied.discard(present)
        collected.append(present)

        for dx, dy in pattern:
            candidate = (present[0] + dx, present[1] + dy)
            if not inside(candidate) or candidate not in occupied:
                continue
            len_to_ref = math.hypot(candidate[0] - reference[0], candidate[1] - reference[1])
            if len(collected) == 1:
                next_cell = candidate
                prev_len = len_to_ref
                continue
            if secondary is None and not secondary_spent:
                secondary = candidate
            elif len_to_ref - prev_len >= 0.0:
                next_cell = candidate
                prev_len = len_to_ref
            break

        if next_cell is None:
            if secondary is not None:
                present = secondary
                prev_len = 0.0
                secondary = None
                secondary_spent = True
            else:
                groups.append(collected)
                collected = []
        else:
            present = next_cell

    return groups


def intersection_type(
    image: Sequence[Sequence[int]],
    models: Sequence[LineModel],
    center: Cell,
) -> int:
    """Classify a crossing of two lines by sampling the image along both.

    ``models`` holds two ``(intercept, slope)`` pairs. Each line is sampled
    up to 30 pixels either side of the centre column. The result is 4 for a
    cross, 3 for a T junction, 2 for an L corner, 1 for an unclear crossing
    and 0 when too little of the lines is visible.
    """
    if len(models) != 2:
        raise ValueError("exactly two line models are required")
    rows = len(image)
    cols = len(image[0]) if rows else 0
    cx = center[0]

    def lit(column: int, model: LineModel) -> bool:
        row = int(model[0] + model[1] * column)
        return 0 <= row < rows and 0 <= column < cols and image[row][column] > 0

    def forward(model: LineModel) -> int:
        stop = min(cx + _SAMPLING_RADIUS, cols)
        return sum(1 for column in range(cx, stop) if lit(column, model))

    def backward(model: LineModel) -> int:
        stop = max(cx - _SAMPLING_RADIUS, 0)
        return sum(1 for column in range(cx, stop, -1) if lit(column, model))

    seg0 = forward(models[0])
    seg1 = backward(models[0])
    seg2 = forward(models[1])
    seg3 = backward(models[1])
    radius = _SAMPLING_RADIUS
    total = seg0 + seg1 + seg2 + seg3

    if total >= radius * 4:
        return 4
    if total >= radius * 3:
        return 3
    if total >= radius * 2:
        one_sided = (
            seg0 < radius and seg2 < radius and seg1 >= radius and seg3 >= radius
        ) or (
            seg0 >= radius and seg2 >= radius and seg1 < radius and seg3 < radius
        )
        return 2 if one_sided else 1
    return 0


def line_intersections(line_models: Sequence[LineModel]) -> list[tuple[float, float]]:
    """Intersection points of every pair of ``(intercept, slope)`` lines.

    Pairs whose slopes differ by less than 0.05 are treated as parallel and
    skipped. Points come in pair order (i, j) with i < j.
    """
    crossings: list[tuple[float, float]] = []
    for i, (c_i, m_i) in enumerate(line_models):
        for c_j, m_j in line_models[i + 1:]:
            if abs(m_i - m_j) < _MIN_SLOPE_DIFF:
                continue
            x = (c_j - c_i) / (m_i - m_j)
            crossings.append((x, c_i + m_i * x))
    return crossings