import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import torch

from ..calibration import TransformLike, parse_transform
from ..exceptions import EstimationFailure, MisconfiguredTransformError
from ..geometry.se3 import SE3
from .constraints import MotionConstraint, constrain_motion


class EstimationResult:
    """Camera-frame motion produced by an estimation algorithm."""

    def __init__(self, motion: SE3, success: bool = True):
        """
        Args:
            motion: Incremental motion of the camera
            success: Whether the motion is valid
        """
        self.motion = motion
        self.success = success

    @classmethod
    def failed(cls, device: Optional[torch.device] = None) -> "EstimationResult":
        return cls(SE3.identity(device=device), success=False)

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return f"EstimationResult(success={self.success}, motion={self.motion!r})"


class MotionEstimation(ABC):
    """
    Base class for visual odometry motion estimation methods.

    The motion is estimated in increments of the change of pose of the base
    frame. Subclasses only implement :meth:`estimate_motion_impl`, which works
    entirely in the camera optical frame; moving the estimate between the
    camera and base frames and applying the motion constraint is done here.

    The base-to-camera transform is plain instance state. It is not guarded
    by a lock: set it before estimation starts, or serialize
    :meth:`set_base_to_camera_tf` with :meth:`estimate_motion` externally.
    """

    def __init__(self, config: Dict = None):
        """
        Initialize motion estimator.

        Args:
            config: Configuration dictionary with the following keys:
                - motion_constraint: MotionConstraint, code or name (default NONE)
                - base_to_camera: Optional base-to-camera transform
                - device: PyTorch device (default "cpu")
        """
        self.config = config if config is not None else {}

        self.device = torch.device(self.config.get("device", "cpu"))
        self._motion_constraint = MotionConstraint.parse(
            self.config.get("motion_constraint", MotionConstraint.NONE)
        )

        self._b2c: Optional[SE3] = None
        if self.config.get("base_to_camera") is not None:
            self._b2c = parse_transform(self.config["base_to_camera"]).to(self.device)

        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def motion_constraint(self) -> MotionConstraint:
        return self._motion_constraint

    @property
    def base_to_camera(self) -> Optional[SE3]:
        return self._b2c

    def set_base_to_camera_tf(self, b2c: TransformLike):
        """
        Set the transformation between the base and camera frames.

        Args:
            b2c: The transform from the base frame to the camera frame,
                expressed wrt the base frame
        """
        self._b2c = parse_transform(b2c).to(self.device)
        self.logger.info(f"Base to camera transform set:\n{self._b2c.to_matrix()}")

    def estimate_motion(self, frame: Any, prediction: Optional[SE3] = None) -> SE3:
        """
        Estimate the incremental motion of the base frame.

        The motion is equal to the change of pose of the base frame, and is
        expressed wrt the fixed frame:

            pose_new = motion * pose_old

        Args:
            frame: The RGB-D frame for which the motion is estimated
            prediction: Optional base-frame motion prediction (identity if
                omitted). It is handed to the algorithm in the camera frame
                as an initial guess.

        Returns:
            Incremental base-frame motion

        Raises:
            MisconfiguredTransformError: if no base-to-camera transform is set
            EstimationFailure: if the algorithm could not estimate the motion
        """
        b2c = self._b2c
        if b2c is None:
            raise MisconfiguredTransformError(
                "Base to camera transform must be set before estimating motion"
            )
        c2b = b2c.inverse()

        # All algebra runs in the precision and device of the extrinsics
        if prediction is None:
            prediction = SE3.identity(device=b2c.device, dtype=b2c.dtype)
        prediction = prediction.to(device=b2c.device, dtype=b2c.dtype)
        camera_prediction = c2b.compose(prediction.compose(b2c))

        result = self.estimate_motion_impl(frame, camera_prediction)

        timestamp = getattr(frame, "timestamp", None)
        if not result.success:
            self.logger.warning(f"Could not estimate motion for frame at {timestamp}")
            raise EstimationFailure("Motion estimation failed", timestamp=timestamp)

        camera_motion = result.motion.to(device=b2c.device, dtype=b2c.dtype)
        motion = b2c.compose(camera_motion.compose(c2b))
        motion = constrain_motion(motion, self._motion_constraint)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Estimated motion at {timestamp}: rpy={motion.rpy()}")
        return motion

    def get_model_size(self) -> int:
        """
        Return the size of the internal model. Overriden for classes that
        use a model.

        Returns:
            The size of the model
        """
        return 0

    def reset(self):
        """Drop any per-sequence state kept by the algorithm."""
        pass

    @abstractmethod
    def estimate_motion_impl(
        self, frame: Any, prediction: SE3
    ) -> EstimationResult:
        """
        Implementation of the motion estimation algorithm.

        Args:
            frame: The current RGB-D frame
            prediction: Motion prediction in the camera frame, usable as an
                initial guess

        Returns:
            Camera-frame incremental motion and its success flag
        """
        pass
