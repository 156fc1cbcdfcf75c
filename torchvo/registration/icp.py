from typing import Dict, Optional, Tuple

import numpy as np
import torch
from scipy.spatial import cKDTree

from ..geometry.se3 import SE3
from ..structures.rgbd_frame import RGBDFrame
from .motion_estimation import EstimationResult, MotionEstimation


class ICPMotionEstimation(MotionEstimation):
    """
    Frame-to-frame point-to-point ICP.

    The model is the point cloud of the last successfully registered frame,
    expressed in the camera frame. Each new frame is aligned to it and then
    replaces it.
    """

    def __init__(self, config: Dict = None):
        """
        Initialize ICP motion estimator.

        Args:
            config: Configuration dictionary. In addition to the keys of
                MotionEstimation:
                - max_iterations: Maximum number of iterations
                - distance_threshold: Maximum distance of a correspondence
                - convergence_threshold: Stop when the update is below this
                - min_correspondences: Minimum number of correspondences
        """
        super().__init__(config)

        self.max_iterations = self.config.get("max_iterations", 30)
        self.distance_threshold = self.config.get("distance_threshold", 0.2)
        self.convergence_threshold = self.config.get("convergence_threshold", 1e-6)
        self.min_correspondences = self.config.get("min_correspondences", 10)

        self.model_points: Optional[torch.Tensor] = None
        self._model_tree: Optional[cKDTree] = None

    def get_model_size(self) -> int:
        return 0 if self.model_points is None else int(self.model_points.shape[0])

    def reset(self):
        self.model_points = None
        self._model_tree = None

    def estimate_motion_impl(
        self, frame: RGBDFrame, prediction: SE3
    ) -> EstimationResult:
        points = getattr(frame, "points", None)
        if points is None or points.shape[0] == 0:
            self.logger.warning("Missing point cloud data for ICP")
            return EstimationResult.failed(device=self.device)

        points = points.to(device=self.device, dtype=prediction.dtype)

        # First frame only initializes the model
        if self.model_points is None:
            self._set_model(points)
            return EstimationResult(SE3.identity(device=self.device, dtype=points.dtype))

        success, motion = self._icp_align(points, prediction)
        if not success:
            return EstimationResult(motion, success=False)

        self._set_model(points)
        return EstimationResult(motion)

    def _set_model(self, points: torch.Tensor):
        self.model_points = points
        self._model_tree = cKDTree(points.detach().cpu().numpy())

    def _find_correspondences(
        self, source_points: torch.Tensor
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Find nearest neighbor correspondences in the model.

        Args:
            source_points: Source point cloud (N, 3)

        Returns:
            Tuple of (source_indices, model_indices) for matching points
        """
        distances, indices = self._model_tree.query(
            source_points.detach().cpu().numpy(),
            distance_upper_bound=self.distance_threshold,
        )
        valid = np.isfinite(distances)

        source_indices = torch.as_tensor(np.nonzero(valid)[0], device=self.device)
        model_indices = torch.as_tensor(indices[valid], device=self.device)
        return source_indices, model_indices

    def _icp_align(
        self, source_points: torch.Tensor, initial: SE3
    ) -> Tuple[bool, SE3]:
        """
        Align source points to the model.

        Args:
            source_points: Source point cloud (N, 3)
            initial: Initial guess of the transform taking source to model

        Returns:
            Tuple of (success, transform)
        """
        current = initial

        for iteration in range(self.max_iterations):
            current_source = current.transform_points(source_points)
            source_indices, model_indices = self._find_correspondences(current_source)

            if len(source_indices) < self.min_correspondences:
                self.logger.warning(
                    f"Not enough correspondences: {len(source_indices)} < {self.min_correspondences}"
                )
                return False, current

            delta = self._compute_point_to_point_transform(
                current_source[source_indices], self.model_points[model_indices]
            )
            current = delta.compose(current)

            # Check for convergence
            eye = torch.eye(3, dtype=delta.dtype, device=delta.device)
            if (
                torch.norm(delta.t) < self.convergence_threshold
                and torch.norm(delta.R - eye) < self.convergence_threshold
            ):
                self.logger.debug(f"ICP converged after {iteration + 1} iterations")
                break

        return True, current

    @staticmethod
    def _compute_point_to_point_transform(
        source_points: torch.Tensor, target_points: torch.Tensor
    ) -> SE3:
        """
        Closed-form rigid alignment of corresponding points (Kabsch).

        Args:
            source_points: Source points (N, 3)
            target_points: Target points (N, 3)

        Returns:
            Transform taking source points onto target points
        """
        source_centroid = torch.mean(source_points, dim=0)
        target_centroid = torch.mean(target_points, dim=0)

        covariance = torch.matmul(
            (source_points - source_centroid).t(), target_points - target_centroid
        )

        U, _, Vh = torch.linalg.svd(covariance)
        V = Vh.t()
        rotation = torch.matmul(V, U.t())

        # Ensure proper rotation matrix (det = 1)
        if torch.det(rotation) < 0:
            V = V.clone()
            V[:, 2] = -V[:, 2]
            rotation = torch.matmul(V, U.t())

        translation = target_centroid - torch.matmul(rotation, source_centroid)

        return SE3(rotation, translation)
