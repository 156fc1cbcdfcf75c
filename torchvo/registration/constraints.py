import numbers
from enum import Enum
from typing import Union

import torch

from ..exceptions import ConfigurationError
from ..geometry.se3 import SE3, euler_to_rotation_matrix, rotation_matrix_to_euler


class MotionConstraint(Enum):
    """Degree-of-freedom constraints applied to estimated motion."""

    NONE = 0
    ROLL_PITCH = 1
    ROLL_PITCH_Z = 2

    @classmethod
    def parse(cls, value: Union["MotionConstraint", int, str, None]) -> "MotionConstraint":
        """
        Resolve a constraint from its enum value, integer code or name.

        Args:
            value: MotionConstraint, integer code (0, 1, 2) or name
                ("none", "roll_pitch", "roll_pitch_z"); None means NONE

        Returns:
            MotionConstraint
        """
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        # bool is an int subclass but never a meaningful code
        if isinstance(value, numbers.Integral) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                raise ConfigurationError(f"Unknown motion constraint code: {value}")
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ConfigurationError(f"Unknown motion constraint: {value!r}")
        raise ConfigurationError(
            f"Motion constraint must be an int or str, got {type(value).__name__}"
        )


def constrain_motion(motion: SE3, constraint: MotionConstraint) -> SE3:
    """
    Project an incremental motion onto the allowed degrees of freedom.

    Roll and pitch are removed by decomposing the rotation with the ZYX
    convention of :func:`rotation_matrix_to_euler` and rebuilding it from
    the yaw alone.

    Args:
        motion: Unconstrained incremental motion
        constraint: Constraint to apply

    Returns:
        Constrained motion. For ``MotionConstraint.NONE`` this is ``motion``
        itself.
    """
    if constraint == MotionConstraint.NONE:
        return motion

    yaw = rotation_matrix_to_euler(motion.R)[2]
    euler = torch.stack([torch.zeros_like(yaw), torch.zeros_like(yaw), yaw])
    rotation = euler_to_rotation_matrix(euler)

    translation = motion.t.clone()
    if constraint == MotionConstraint.ROLL_PITCH_Z:
        translation[2] = 0.0

    return SE3(rotation, translation)
