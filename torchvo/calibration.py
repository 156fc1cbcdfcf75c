import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import numpy as np
import torch
import yaml

from .exceptions import ConfigurationError
from .geometry.se3 import SE3

TransformLike = Union[SE3, torch.Tensor, np.ndarray, list, Mapping[str, Any]]


def parse_transform(value: TransformLike, atol: float = 1e-4) -> SE3:
    """
    Build an SE3 from any of the forms accepted in configuration.

    Supported forms:
        - an SE3 instance (returned as is)
        - a 4x4 homogeneous matrix (tensor, ndarray or nested list)
        - a mapping with "translation" [x, y, z] and "rotation" given either
          as a quaternion [w, x, y, z] or as {"roll", "pitch", "yaw"} in radians

    Every form must describe a proper rigid transformation: orthonormal
    rotation with determinant +1 and, for matrices, a [0, 0, 0, 1] last row.

    Args:
        value: Transform description
        atol: Tolerance of the rigidity checks

    Returns:
        SE3 object
    """
    if isinstance(value, SE3):
        transform = value
    elif isinstance(value, Mapping):
        transform = _transform_from_mapping(value)
    else:
        transform = _transform_from_matrix(value, atol)

    if not transform.is_rigid(atol=atol):
        raise ConfigurationError(f"Not a rigid transform:\n{transform.to_matrix()}")
    return transform


def _transform_from_mapping(value: Mapping[str, Any]) -> SE3:
    translation = value.get("translation", [0.0, 0.0, 0.0])
    rotation = value.get("rotation")
    try:
        if rotation is None:
            return SE3.from_rpy(0.0, 0.0, 0.0, translation=translation)
        if isinstance(rotation, Mapping):
            return SE3.from_rpy(
                float(rotation.get("roll", 0.0)),
                float(rotation.get("pitch", 0.0)),
                float(rotation.get("yaw", 0.0)),
                translation=translation,
            )
        return SE3.from_quaternion(rotation, translation=translation)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid transform {dict(value)}: {e}") from e


def _transform_from_matrix(value: Any, atol: float) -> SE3:
    try:
        transform = SE3.from_matrix(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid transform matrix: {e}") from e

    last_row = torch.as_tensor(value, dtype=transform.dtype)[3].to(transform.device)
    expected = torch.tensor(
        [0.0, 0.0, 0.0, 1.0], dtype=transform.dtype, device=transform.device
    )
    if not torch.allclose(last_row, expected, atol=atol):
        raise ConfigurationError(
            f"Homogeneous matrix must end with [0, 0, 0, 1], got {last_row.tolist()}"
        )
    return transform


class CameraExtrinsics:
    """Static calibration between the robot base frame and a camera."""

    def __init__(self, sensor_id: str, base_to_camera: SE3):
        """
        Args:
            sensor_id: Name of the camera
            base_to_camera: Transform from the base frame to the camera
                optical frame, expressed in the base frame
        """
        self.sensor_id = sensor_id
        self.base_to_camera = base_to_camera

    def to_dict(self) -> Dict:
        """Convert extrinsics to a dictionary for serialization."""
        return {
            "sensor_id": self.sensor_id,
            "base_to_camera": {
                "translation": self.base_to_camera.t.tolist(),
                "rotation": self.base_to_camera.as_quaternion().tolist(),
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CameraExtrinsics":
        """Create a CameraExtrinsics object from a dictionary."""
        if "base_to_camera" not in data:
            raise ConfigurationError("Extrinsics are missing 'base_to_camera'")
        return cls(
            data.get("sensor_id", "camera"), parse_transform(data["base_to_camera"])
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "CameraExtrinsics":
        """
        Load extrinsics from a YAML or JSON file.

        Args:
            path: File path; ``.yaml``/``.yml`` files are read as YAML,
                anything else as JSON

        Returns:
            CameraExtrinsics object
        """
        path = Path(path)
        with open(path, "r") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Malformed extrinsics file: {path}")

        extrinsics = cls.from_dict(data)
        logging.info(f"Loaded extrinsics for {extrinsics.sensor_id} from {path}")
        return extrinsics

    def save(self, path: Union[str, Path]):
        """Export extrinsics to a YAML or JSON file."""
        path = Path(path)
        with open(path, "w") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

        logging.info(f"Exported extrinsics to {path}")
