"""
Geometry module for torchvo.

Rigid body transformations and rotation parameterisations shared by the
registration and odometry components.
"""

from .se3 import (
    SE3,
    euler_to_rotation_matrix,
    quaternion_to_rotation_matrix,
    rotation_matrix_to_euler,
    rotation_matrix_to_quaternion,
)

__all__ = [
    "SE3",
    "euler_to_rotation_matrix",
    "rotation_matrix_to_euler",
    "quaternion_to_rotation_matrix",
    "rotation_matrix_to_quaternion",
]
