"""
torchvo

Incremental RGB-D visual odometry built on PyTorch. A motion estimator turns
per-frame registration results into the motion of the robot base frame:

- Geometry: rigid body transformations and rotation conversions
- Registration: the motion estimation interface, motion constraints and an
  ICP estimator
- Odometry: integration of incremental motion into a fixed-frame pose
- Calibration: base-to-camera extrinsics loading
"""
from torchvo.calibration import CameraExtrinsics, parse_transform
from torchvo.exceptions import (
    ConfigurationError,
    EstimationFailure,
    MisconfiguredTransformError,
    TorchVOError,
)
from torchvo.geometry import SE3
from torchvo.odometry import OdometryStatus, VisualOdometry
from torchvo.registration import (
    EstimationResult,
    ICPMotionEstimation,
    MotionConstraint,
    MotionEstimation,
    constrain_motion,
)
from torchvo.structures import RGBDFrame

# Version information
from torchvo.version import __version__

__all__ = [
    # Version
    "__version__",
    # Geometry
    "SE3",
    # Registration
    "MotionConstraint",
    "constrain_motion",
    "EstimationResult",
    "MotionEstimation",
    "ICPMotionEstimation",
    # Structures
    "RGBDFrame",
    # Odometry
    "VisualOdometry",
    "OdometryStatus",
    # Calibration
    "CameraExtrinsics",
    "parse_transform",
    # Errors
    "TorchVOError",
    "ConfigurationError",
    "MisconfiguredTransformError",
    "EstimationFailure",
]
