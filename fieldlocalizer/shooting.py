"""Choice of a shooting direction towards the opponent goal."""

from __future__ import annotations

import math
from typing import Sequence

from fieldlocalizer.field import FieldGeometry

NO_SHOT = 360.0
"""Returned when no shot should be taken from the ball's position."""

_GK_OCCUPANCY = 80.0
_HALF_GK_OCCUPANCY = _GK_OCCUPANCY * 0.5


def _wrap_degrees(angle: float) -> float:
    return angle + 360.0 if angle < 0.0 else angle


def _bearing(from_x: float, from_y: float, to_x: float, to_y: float) -> float:
    return _wrap_degrees(math.degrees(math.atan2(to_y - from_y, to_x - from_x)))


def calc_shoot_dir(
    field: FieldGeometry,
    ball_pos: Sequence[float],
    robot_theta: float,
    resetting: bool = False,
) -> float:
    """Direction in degrees, in [0, 360), to kick a ball at a global position.

    ``ball_pos`` is in monitor centimetres and ``robot_theta`` in degrees.
    Returns :data:`NO_SHOT` when the ball lies in the narrow strips beside the
    goalkeeper inside the goal area, or when the filter is resetting. In front
    of the goalkeeper the shot aims at the goal post on the side the robot is
    not facing; elsewhere it aims at the centre of the goal.
    """
    if len(ball_pos) < 2:
        raise ValueError("ball_pos needs an x and a y coordinate")
    ball_x, ball_y = float(ball_pos[0]), float(ball_pos[1])

    b = field.border_strip_width
    goal_post_x = float(field.field_length + b)
    goal_post_y1 = b + (field.field_width - field.goal_width) * 0.5
    goal_post_y2 = b + (field.field_width + field.goal_width) * 0.5
    center_goal_x = float(field.field_length + (b << 1))
    center_goal_y = (goal_post_y1 + goal_post_y2) * 0.5
    penalty = field.penalty_mark_distance

    in_zone1 = (goal_post_x - penalty < ball_x < goal_post_x
                and goal_post_y1 < ball_y < center_goal_y - _HALF_GK_OCCUPANCY)
    in_zone2 = (goal_post_x - penalty < ball_x < goal_post_x
                and center_goal_y + _HALF_GK_OCCUPANCY < ball_y < goal_post_y2)
    if in_zone1 or in_zone2 or resetting:
        return NO_SHOT

    in_gk_area = (center_goal_x - penalty - b <= ball_x <= center_goal_x - b
                  and center_goal_y - _HALF_GK_OCCUPANCY <= ball_y
                  <= center_goal_y + _HALF_GK_OCCUPANCY)
    if in_gk_area:
        theta = _wrap_degrees(robot_theta)
        facing_down = 180.0 < theta < 360.0
        half_goal = field.goal_width * 0.5
        target_x = center_goal_x - b
        target_y = center_goal_y + (-half_goal if facing_down else half_goal)
        return _bearing(ball_x, ball_y, target_x, target_y)

    return _bearing(ball_x, ball_y, center_goal_x, center_goal_y)