"""
Registration module for torchvo.

This module contains the motion estimation interface shared by all
registration algorithms, the motion constraints applied to their output,
and an ICP-based implementation.
"""

from .constraints import MotionConstraint, constrain_motion
from .icp import ICPMotionEstimation
from .motion_estimation import EstimationResult, MotionEstimation

__all__ = [
    "MotionConstraint",
    "constrain_motion",
    "EstimationResult",
    "MotionEstimation",
    "ICPMotionEstimation",
]
