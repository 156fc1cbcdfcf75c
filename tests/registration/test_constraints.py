import math

import numpy as np
import pytest
import torch

from torchvo.exceptions import ConfigurationError
from torchvo.geometry.se3 import SE3
from torchvo.registration.constraints import MotionConstraint, constrain_motion

CONSTRAINED = [MotionConstraint.ROLL_PITCH, MotionConstraint.ROLL_PITCH_Z]


def _random_motions(n=25, seed=0):
    generator = torch.Generator().manual_seed(seed)
    motions = []
    for _ in range(n):
        angles = (torch.rand(3, generator=generator, dtype=torch.float64) - 0.5) * 2.0
        roll, pitch, yaw = (angles * torch.tensor([math.pi, 1.5, math.pi])).tolist()
        translation = torch.randn(3, generator=generator, dtype=torch.float64)
        motions.append(
            SE3.from_rpy(roll, pitch, yaw, translation=translation, dtype=torch.float64)
        )
    return motions


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, MotionConstraint.NONE),
        (0, MotionConstraint.NONE),
        (1, MotionConstraint.ROLL_PITCH),
        (2, MotionConstraint.ROLL_PITCH_Z),
        ("roll_pitch", MotionConstraint.ROLL_PITCH),
        ("ROLL_PITCH_Z", MotionConstraint.ROLL_PITCH_Z),
        (MotionConstraint.ROLL_PITCH, MotionConstraint.ROLL_PITCH),
        (np.int64(1), MotionConstraint.ROLL_PITCH),
        (np.int32(2), MotionConstraint.ROLL_PITCH_Z),
    ],
)
def test_parse(value, expected):
    assert MotionConstraint.parse(value) is expected


@pytest.mark.parametrize("value", [3, -1, np.int64(5), "planar", True, 1.0])
def test_parse_rejects_unknown_values(value):
    with pytest.raises(ConfigurationError):
        MotionConstraint.parse(value)


def test_none_returns_motion_unchanged():
    for motion in _random_motions():
        assert constrain_motion(motion, MotionConstraint.NONE) is motion


@pytest.mark.parametrize("constraint", CONSTRAINED)
def test_roll_and_pitch_are_removed(constraint):
    for motion in _random_motions():
        constrained = constrain_motion(motion, constraint)
        roll, pitch, yaw = constrained.rpy()
        assert roll == pytest.approx(0.0, abs=1e-12)
        assert pitch == pytest.approx(0.0, abs=1e-12)
        assert yaw == pytest.approx(motion.rpy()[2], abs=1e-12)
        # rotation stays a proper rotation about z
        assert torch.allclose(
            constrained.R @ constrained.R.t(), torch.eye(3, dtype=torch.float64)
        )
        assert constrained.R[2, 2].item() == pytest.approx(1.0)


@pytest.mark.parametrize("constraint", CONSTRAINED)
def test_projection_is_idempotent(constraint):
    for motion in _random_motions():
        once = constrain_motion(motion, constraint)
        twice = constrain_motion(once, constraint)
        assert twice.allclose(once, atol=1e-12)


def test_roll_pitch_keeps_translation():
    for motion in _random_motions():
        constrained = constrain_motion(motion, MotionConstraint.ROLL_PITCH)
        assert torch.equal(constrained.t, motion.t)


def test_roll_pitch_z_removes_vertical_translation():
    for motion in _random_motions():
        constrained = constrain_motion(motion, MotionConstraint.ROLL_PITCH_Z)
        assert constrained.t[2].item() == 0.0
        assert torch.equal(constrained.t[:2], motion.t[:2])


@pytest.mark.parametrize("constraint", CONSTRAINED)
def test_input_is_not_modified(constraint):
    motion = SE3.from_rpy(0.2, 0.1, 0.5, translation=[1.0, 2.0, 3.0])
    R_before = motion.R.clone()
    t_before = motion.t.clone()
    constrain_motion(motion, constraint)
    assert torch.equal(motion.R, R_before)
    assert torch.equal(motion.t, t_before)


def test_gimbal_lock_motion_is_projected_to_yaw_only():
    motion = SE3.from_rpy(0.3, math.pi / 2, 0.2, dtype=torch.float64)
    constrained = constrain_motion(motion, MotionConstraint.ROLL_PITCH)
    roll, pitch, _ = constrained.rpy()
    assert roll == pytest.approx(0.0, abs=1e-12)
    assert pitch == pytest.approx(0.0, abs=1e-12)
