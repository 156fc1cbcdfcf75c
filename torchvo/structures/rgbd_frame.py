from typing import Optional

import torch


class RGBDFrame:
    """
    A single RGB-D observation.

    The motion estimation base class passes frames through untouched; only
    concrete estimators read the fields they need.
    """

    def __init__(
        self,
        rgb: Optional[torch.Tensor] = None,
        depth: Optional[torch.Tensor] = None,
        points: Optional[torch.Tensor] = None,
        timestamp: Optional[float] = None,
        frame_id: Optional[str] = None,
    ):
        """
        Initialize frame.

        Args:
            rgb: Color image (C, H, W)
            depth: Depth image in meters (H, W)
            points: Camera-frame point cloud (N, 3)
            timestamp: Acquisition time in seconds
            frame_id: Name of the camera optical frame
        """
        if points is not None and (points.ndim != 2 or points.shape[1] != 3):
            raise ValueError(f"Expected (N, 3) points, got {tuple(points.shape)}")

        self.rgb = rgb
        self.depth = depth
        self.points = points
        self.timestamp = timestamp
        self.frame_id = frame_id

    @property
    def n_points(self) -> int:
        """Number of points in the frame's point cloud."""
        return 0 if self.points is None else int(self.points.shape[0])

    def __repr__(self) -> str:
        return f"RGBDFrame(timestamp={self.timestamp}, n_points={self.n_points})"
