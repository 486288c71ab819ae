# fieldlocalizer

Adaptive Monte Carlo localization for a robot that plays on a marked soccer
field. The robot's pose is estimated from field features: line segments,
L/T/X corners and the center circle. These are combined with odometry and
the heading reported by a gyro.

## Installation

```
pip install fieldlocalizer
```

The package uses only the standard library.

## What is inside

- `fieldlocalizer.model` holds the shared value types: `Particle`, `Pose`,
  `FeatureType` and `Feature`. It also has `best_particle()`, which returns
  a copy of the first particle with the highest positive weight.
- `fieldlocalizer.field` holds `FieldGeometry`, which gives the field
  dimensions in centimetres.
  - `landmarks()` returns the L, T, X and center-circle positions in metres.
  - `line_segments()` returns the eleven reference lines. The first five are
    vertical and the other six horizontal.
  - `random_particle()` draws a particle uniformly over the playing area.
- `fieldlocalizer.pattern` holds helpers for point maps:
  - `radial_pattern()` gives ring-by-ring neighbourhood offsets.
  - `arrange_target_points()` sorts points by x, then by y.
  - `sample_circle_candidates()` chains points that may lie on a curve.
  - `intersection_type()` classifies a crossing of two lines in a binary
    image. It returns 4 for X, 3 for T, 2 for L, 1 for unclear and 0 for
    too little line visible.
  - `line_intersections()` gives the crossing points of `(intercept, slope)`
    lines.
- `fieldlocalizer.amcl` holds the filter, made of `AmclParams`,
  `SensorModel` and `AMCL`.
  - `AMCL.update(features)` runs one step and returns the estimated `Pose`.
  - Each step applies the odometry motion model to the particles.
  - It then weighs them against the observed features.
  - It resamples them with the resampling wheel.
  - It estimates the pose from the particles clustered around the best one.
  - Random particles are injected when the short-term weight average drops
    below the long-term one.
  - `low_variance_resampling()` is available as an alternative resampler.
  - `resize_particles()` changes the particle count on the fly.
  - Pending odometry displacements go into `AMCL.odometry`, a deque of
    `(dx, dy)` in centimetres.
  - The gyro rotation since the last step goes into `AMCL.heading_change`,
    in radians.
  - The absolute gyro heading goes into `AMCL.gyro_heading`, in degrees.
  - While the filter is resetting, the pose is reported at
    `(999, 999)`.
- `fieldlocalizer.shooting` holds `calc_shoot_dir()`, which picks a kick
  direction in degrees toward the opponent goal from the ball's global
  position.
  - When the ball is in front of the goalkeeper, it aims at a goal post.
  - It returns `NO_SHOT` (360) from the strips beside the goalkeeper, or
    while resetting.
- `fieldlocalizer.smoothing` holds `PoseMovingAverage`, a sliding-window
  mean of poses.
  - The default window holds 5 poses.
  - Sums and quotients are truncated to whole units.

## Example

```python
import random

from fieldlocalizer.amcl import AMCL, AmclParams
from fieldlocalizer.field import FieldGeometry
from fieldlocalizer.model import Feature, FeatureType
from fieldlocalizer.smoothing import PoseMovingAverage

amcl = AMCL(FieldGeometry(), AmclParams(num_particles=200), None, random.Random(0))
smoother = PoseMovingAverage(5)

# The center circle seen 150 cm straight ahead of the robot
# (center x, center y, radius, distance; orientation in degrees).
seen = [Feature(0.0, 150.0, 75.0, 150.0, 0.0, FeatureType.CENTER_CIRCLE)]
for _ in range(20):
    pose = amcl.update(seen)
    print(smoother.push(pose))
```

Distances are in centimetres and headings in degrees, unless a docstring
says otherwise.

## What it does not do

The package does not read camera images. It also does not turn pixels into
ground coordinates. Features must be given to `AMCL.update()` already
measured in robot-local centimetres. Likewise the package does not subscribe
to, or publish on, any robot middleware. It has no command-line program and
no visualisation. Feeding odometry and gyro readings, and passing on the
pose, is left to the caller.

## Running the tests

```
pip install "fieldlocalizer[test]"
pytest
```