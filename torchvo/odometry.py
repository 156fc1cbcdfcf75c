import logging
from enum import Enum
from typing import Any, Dict, Optional

from .calibration import parse_transform
from .exceptions import EstimationFailure
from .geometry.se3 import SE3
from .registration.motion_estimation import MotionEstimation


class OdometryStatus(Enum):
    """Status of odometry estimation."""

    OK = 0
    LOST = 1
    INITIALIZING = 2


class VisualOdometry:
    """
    Integrates incremental base-frame motion into a fixed-frame pose.

    Motions returned by a MotionEstimation are applied on the left:

        pose_new = motion * pose_old
    """

    def __init__(self, motion_estimation: MotionEstimation, config: Dict = None):
        """
        Initialize visual odometry.

        Args:
            motion_estimation: Estimator producing incremental motion
            config: Configuration dictionary with the following keys:
                - initial_pose: Optional initial fixed-to-base transform
                - normalize_every: Re-orthonormalize the pose every N frames
        """
        self.motion_estimation = motion_estimation
        self.config = config if config is not None else {}

        initial_pose = self.config.get("initial_pose")
        self.initial_pose = (
            parse_transform(initial_pose).to(motion_estimation.device)
            if initial_pose is not None
            else SE3.identity(device=motion_estimation.device)
        )
        self.normalize_every = self.config.get("normalize_every", 100)

        self.logger = logging.getLogger(self.__class__.__name__)
        self.reset()

    def reset(self):
        """Reset odometry to the initial pose."""
        self.current_pose = self.initial_pose
        self.relative_motion = SE3.identity(device=self.motion_estimation.device)
        self.status = OdometryStatus.INITIALIZING
        self.frame_idx = 0
        self.motion_estimation.reset()

    def process_frame(self, frame: Any, prediction: Optional[SE3] = None) -> SE3:
        """
        Process a new frame and update the fixed-frame pose.

        A failed estimate leaves the pose unchanged and marks odometry as lost
        until the next successful frame.

        Args:
            frame: RGB-D frame
            prediction: Optional base-frame motion prediction

        Returns:
            Current fixed-frame pose of the base
        """
        try:
            motion = self.motion_estimation.estimate_motion(frame, prediction)
        except EstimationFailure as e:
            self.logger.warning(f"Keeping previous pose: {e}")
            self.status = OdometryStatus.LOST
            return self.current_pose

        self.update_pose(motion)
        return self.current_pose

    def update_pose(self, motion: SE3):
        """
        Update the pose with incremental motion.

        Args:
            motion: Incremental base-frame motion
        """
        motion = motion.to(
            device=self.current_pose.device, dtype=self.current_pose.dtype
        )
        self.current_pose = motion.compose(self.current_pose)
        self.relative_motion = motion
        self.frame_idx += 1

        if self.normalize_every and self.frame_idx % self.normalize_every == 0:
            self.current_pose = self.current_pose.normalized()

        self.status = OdometryStatus.OK

    def get_current_pose(self) -> SE3:
        return self.current_pose

    def get_relative_motion(self) -> SE3:
        return self.relative_motion

    def get_status(self) -> OdometryStatus:
        return self.status
