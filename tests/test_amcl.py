import math
import random

import pytest

from fieldlocalizer.amcl import AMCL, AmclParams, SensorModel
from fieldlocalizer.field import FieldGeometry
from fieldlocalizer.model import Feature, FeatureType, Particle, Pose


def make_amcl(n=20, seed=1):
    return AMCL(FieldGeometry(), AmclParams(num_particles=n), SensorModel(), random.Random(seed))


def circle_feature():
    # robot at (300, 400) facing +x sees the centre circle 250 cm straight ahead
    return Feature(param1=250.0, param2=0.0, param3=75.0, param4=250.0,
                   orientation=0.0, feature_type=FeatureType.CENTER_CIRCLE)


def test_params_validation():
    with pytest.raises(ValueError):
        AmclParams(num_particles=0)
    with pytest.raises(ValueError):
        AmclParams(gy_var=0.0)


def test_sensor_model_peaks_at_zero():
    model = SensorModel()
    assert model.range_likelihood(0.0) == 1.0
    assert model.range_likelihood(0.1) > model.range_likelihood(1.0)
    assert model.beam_likelihood(0.2) > model.beam_likelihood(0.4)
    assert model.heading_likelihood(0.0, 0.5) == 1.0


def test_initialize_particles_within_field():
    amcl = make_amcl(50)
    field = amcl.field
    assert len(amcl.particles) == 50
    for p in amcl.particles:
        b = field.border_strip_width
        assert b <= p.x <= b + field.field_length
        assert b <= p.y <= b + field.field_width
        assert 0 <= p.theta <= 360
        assert p.weight == pytest.approx(1 / 50)


def test_initial_pose_is_half_border():
    amcl = make_amcl()
    half = amcl.field.border_strip_width >> 1
    assert (amcl.robot_state.x, amcl.robot_state.y) == (half, half)


def test_resize_grow_and_shrink():
    amcl = make_amcl(10)
    original = list(amcl.particles)
    amcl.resize_particles(15)
    assert len(amcl.particles) == 15
    assert amcl.particles[:10] == original
    assert all(p.weight == pytest.approx(1 / 15) for p in amcl.particles[10:])
    assert amcl.params.num_particles == 15
    amcl.resize_particles(4)
    assert amcl.particles == original[:4]
    assert amcl.params.num_particles == 4


def test_resampling_wheel_copies_dominant_particle():
    amcl = make_amcl(10)
    particles = [Particle(200.0 + i, 300.0, 10.0, 0.0) for i in range(10)]
    particles[3].weight = 1.0
    resampled, best = amcl.resampling_wheel(particles)
    assert best == particles[3]
    assert len(resampled) == 10
    assert all(p == particles[3] for p in resampled)
    assert amcl.resetting is False


def test_resampling_wheel_full_reset_when_lost():
    amcl = make_amcl(30)
    amcl.short_term_avg, amcl.long_term_avg = 0.0, 1.0
    particles = [Particle(200.0, 300.0, 0.0, 1 / 30) for _ in range(30)]
    resampled, _ = amcl.resampling_wheel(particles)
    assert amcl.resetting is True
    assert all(p.weight == 0.0 for p in resampled)
    b = amcl.field.border_strip_width
    assert all(b <= p.x <= b + amcl.field.field_length for p in resampled)


def test_resampling_wheel_local_reset_with_one_feature():
    amcl = make_amcl(200)
    amcl.features_present = 1
    amcl.short_term_avg, amcl.long_term_avg = 0.0, 1.0
    amcl.last_robot_state = Pose(500.0, 400.0, 0.0)
    heavy = Particle(900.0, 150.0, 0.0, 1.0)
    particles = [heavy] + [Particle(900.0, 150.0, 0.0, 0.0) for _ in range(199)]
    resampled, _ = amcl.resampling_wheel(particles)
    for p in resampled:
        if p.weight == 0.0:
            assert 400 <= p.x <= 600 and 300 <= p.y <= 500
        else:
            assert p == heavy


def test_resampling_rejects_empty():
    amcl = make_amcl()
    with pytest.raises(ValueError):
        amcl.resampling_wheel([])
    with pytest.raises(ValueError):
        amcl.low_variance_resampling([])


def test_low_variance_copies_dominant_particle():
    amcl = make_amcl(8)
    particles = [Particle(float(i), 0.0, 0.0, 0.0) for i in range(8)]
    particles[5].weight = 1.0
    resampled, best = amcl.low_variance_resampling(particles)
    assert best == particles[5]
    assert all(p == particles[5] for p in resampled)


def test_low_variance_rejects_zero_weights():
    amcl = make_amcl(4)
    with pytest.raises(ValueError):
        amcl.low_variance_resampling([Particle() for _ in range(4)])


def test_calc_robot_pose_cluster_mean():
    amcl = make_amcl(10)
    amcl.particles = [Particle(500.0, 400.0, 90.0, 0.1) for _ in range(10)]
    pose = amcl.calc_robot_pose(amcl.particles[0])
    assert pose.x == pytest.approx(500.0)
    assert pose.y == pytest.approx(400.0)
    assert pose.theta == pytest.approx(90.0)
    assert amcl.last_robot_state == pose


def test_calc_robot_pose_resetting_marks_lost():
    amcl = make_amcl(10)
    amcl.resetting = True
    pose = amcl.calc_robot_pose(Particle())
    assert (pose.x, pose.y) == (999.0, 999.0)
    assert amcl.resetting is False


def test_calc_robot_pose_falls_back_to_odometry():
    amcl = make_amcl(10)
    amcl.particles = [Particle(100.0 + 80.0 * i, 300.0, 0.0, 0.1) for i in range(10)]
    amcl.last_robot_state = Pose(200.0, 300.0, 0.0)
    amcl.odometry.append((30.0, 40.0))
    pose = amcl.calc_robot_pose(amcl.particles[0])
    assert pose.x == pytest.approx(200.0 + math.hypot(30.0, 40.0))
    assert pose.y == pytest.approx(300.0)
    assert pose.theta == pytest.approx(0.0)


def test_motion_model_translates_and_rotates_without_noise():
    amcl = make_amcl()
    amcl.odometry.append((10.0, 0.0))
    start = [Particle(200.0, 300.0, 0.0, 0.5)]
    moved = amcl.sample_motion_model_odometry(start, math.pi / 2)
    assert moved[0].x == pytest.approx(210.0)
    assert moved[0].y == pytest.approx(300.0)
    assert moved[0].theta == pytest.approx(90.0)
    assert moved[0].weight == 0.5
    assert start[0].x == 200.0


def test_motion_model_wraps_negative_heading():
    amcl = make_amcl()
    moved = amcl.sample_motion_model_odometry([Particle(0.0, 0.0, 0.0, 1.0)], -math.pi / 2)
    assert moved[0].theta == pytest.approx(270.0)


def test_measurement_without_features_keeps_particles():
    amcl = make_amcl(2)
    amcl.last_weight_avg = 0.3
    particles = [Particle(1.0, 2.0, 3.0, 0.4), Particle(4.0, 5.0, 6.0, 0.6)]
    result, avg = amcl.measurement_model(particles, [])
    assert result == particles
    assert avg == 0.3


def test_measurement_prefers_true_pose():
    amcl = make_amcl(2)
    particles = [Particle(300.0, 400.0, 0.0, 0.5), Particle(700.0, 200.0, 0.0, 0.5)]
    weighted, avg = amcl.measurement_model(particles, [circle_feature()])
    assert weighted[0].weight > weighted[1].weight
    assert sum(p.weight for p in weighted) == pytest.approx(1.0)
    assert avg > 0.0


def test_measurement_line_feature_normalises():
    amcl = make_amcl(3)
    line = Feature(-50.0, 100.0, 50.0, 100.0, 90.0, FeatureType.LINE)
    particles = [Particle(200.0, 300.0, 0.0, 1 / 3),
                 Particle(500.0, 500.0, 90.0, 1 / 3),
                 Particle(800.0, 400.0, 180.0, 1 / 3)]
    weighted, _ = amcl.measurement_model(particles, [line])
    assert sum(p.weight for p in weighted) == pytest.approx(1.0)
    assert all(p.weight >= 0.0 for p in weighted)


def test_update_without_features_holds_last_pose():
    amcl = make_amcl(40)
    pose = amcl.update([])
    assert amcl.features_present == 0
    half = amcl.field.border_strip_width >> 1
    assert (pose.x, pose.y) == (half, half)
    assert len(amcl.particles) == 40


def test_update_converges_on_observed_pose():
    amcl = make_amcl(50, seed=7)
    amcl.particles = [Particle(300.0, 400.0, 0.0, 1 / 50) for _ in range(50)]
    pose = amcl.update([circle_feature()])
    assert amcl.features_present == 999
    assert abs(pose.x - 300.0) < 5.0
    assert abs(pose.y - 400.0) < 5.0
    assert abs(pose.theta) < 5.0
    assert amcl.short_term_avg == pytest.approx(amcl.long_term_avg)
    assert len(amcl.particles) == 50