import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import torch

ArrayLike = Union[torch.Tensor, np.ndarray, Sequence[float]]


def _as_tensor(
    value: ArrayLike,
    dtype: Optional[torch.dtype] = None,
    device: Optional[torch.device] = None,
) -> torch.Tensor:
    """Convert a tensor, array or nested sequence to a floating point tensor."""
    if isinstance(value, torch.Tensor):
        if dtype is None:
            dtype = value.dtype if value.is_floating_point() else torch.float32
        return value.to(dtype=dtype, device=device or value.device)
    return torch.as_tensor(
        np.asarray(value, dtype=np.float64),
        dtype=dtype or torch.float32,
        device=device,
    )


class SE3:
    """
    Rigid body transformation in 3D.

    Holds a 3x3 rotation matrix ``R`` and a translation vector ``t``. Values
    are treated as immutable: every operation returns a new ``SE3`` and never
    writes into the tensors of its operands.

    Composition follows the usual matrix convention, ``a.compose(b)`` (or
    ``a @ b``) applies ``b`` first and then ``a``.
    """

    def __init__(self, rotation: torch.Tensor, translation: torch.Tensor):
        """
        Initialize SE(3) transformation.

        Args:
            rotation: 3x3 rotation matrix
            translation: 3D translation vector
        """
        self.R = rotation
        self.t = translation

        # Store device for operations
        self.device = rotation.device

    @property
    def dtype(self) -> torch.dtype:
        return self.R.dtype

    @classmethod
    def from_matrix(cls, matrix: ArrayLike) -> "SE3":
        """
        Create SE(3) object from 4x4 transformation matrix.

        Args:
            matrix: 4x4 transformation matrix

        Returns:
            SE3 object
        """
        matrix = _as_tensor(matrix)
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected 4x4 matrix, got {tuple(matrix.shape)}")

        rotation = matrix[:3, :3].clone()
        translation = matrix[:3, 3].clone()

        return cls(rotation, translation)

    @classmethod
    def from_rotation_translation(
        cls, rotation: ArrayLike, translation: ArrayLike
    ) -> "SE3":
        """
        Create SE(3) object from rotation matrix and translation vector.

        Args:
            rotation: 3x3 rotation matrix
            translation: 3D translation vector

        Returns:
            SE3 object
        """
        rotation = _as_tensor(rotation)
        translation = _as_tensor(translation, dtype=rotation.dtype, device=rotation.device)

        if rotation.shape != (3, 3):
            raise ValueError(
                f"Expected 3x3 rotation matrix, got {tuple(rotation.shape)}"
            )

        if translation.shape != (3,):
            raise ValueError(
                f"Expected 3D translation vector, got {tuple(translation.shape)}"
            )

        return cls(rotation, translation)

    @classmethod
    def from_rpy(
        cls,
        roll: float,
        pitch: float,
        yaw: float,
        translation: Optional[ArrayLike] = None,
        dtype: torch.dtype = torch.float32,
        device: Optional[torch.device] = None,
    ) -> "SE3":
        """
        Create SE(3) object from roll, pitch and yaw angles.

        Angles follow the convention of :func:`euler_to_rotation_matrix`.

        Args:
            roll, pitch, yaw: Rotation angles in radians
            translation: Optional 3D translation (defaults to zero)
            dtype: Tensor dtype
            device: PyTorch device

        Returns:
            SE3 object
        """
        device = device or torch.device("cpu")
        euler = torch.tensor([roll, pitch, yaw], dtype=dtype, device=device)
        R = euler_to_rotation_matrix(euler)

        if translation is None:
            t = torch.zeros(3, dtype=dtype, device=device)
        else:
            t = _as_tensor(translation, dtype=dtype, device=device)

        return cls.from_rotation_translation(R, t)

    @classmethod
    def from_quaternion(
        cls,
        quaternion: ArrayLike,
        translation: Optional[ArrayLike] = None,
        dtype: torch.dtype = torch.float32,
        device: Optional[torch.device] = None,
    ) -> "SE3":
        """
        Create SE(3) object from a quaternion and a translation.

        Args:
            quaternion: Quaternion [w, x, y, z] (normalized internally)
            translation: Optional 3D translation (defaults to zero)
            dtype: Tensor dtype
            device: PyTorch device

        Returns:
            SE3 object
        """
        q = _as_tensor(quaternion, dtype=dtype, device=device)
        if q.shape != (4,):
            raise ValueError(f"Expected quaternion [w, x, y, z], got {tuple(q.shape)}")

        R = quaternion_to_rotation_matrix(q)
        if translation is None:
            t = torch.zeros(3, dtype=dtype, device=q.device)
        else:
            t = _as_tensor(translation, dtype=dtype, device=q.device)

        return cls.from_rotation_translation(R, t)

    @classmethod
    def identity(
        cls, device: Optional[torch.device] = None, dtype: torch.dtype = torch.float32
    ) -> "SE3":
        """
        Create identity transformation.

        Args:
            device: PyTorch device
            dtype: Tensor dtype

        Returns:
            Identity SE3 object
        """
        device = device or torch.device("cpu")
        R = torch.eye(3, dtype=dtype, device=device)
        t = torch.zeros(3, dtype=dtype, device=device)
        return cls(R, t)

    def to_matrix(self) -> torch.Tensor:
        """
        Convert to 4x4 transformation matrix.

        Returns:
            4x4 transformation matrix
        """
        matrix = torch.eye(4, dtype=self.dtype, device=self.device)
        matrix[:3, :3] = self.R
        matrix[:3, 3] = self.t
        return matrix

    def as_quaternion(self) -> torch.Tensor:
        """Rotation as a unit quaternion [w, x, y, z]."""
        return rotation_matrix_to_quaternion(self.R)

    def rpy(self) -> Tuple[float, float, float]:
        """
        Decompose the rotation into roll, pitch and yaw.

        Returns:
            Tuple (roll, pitch, yaw) in radians
        """
        roll, pitch, yaw = rotation_matrix_to_euler(self.R).tolist()
        return roll, pitch, yaw

    def transform_points(self, points: torch.Tensor) -> torch.Tensor:
        """
        Transform multiple 3D points.

        Args:
            points: Tensor of shape (N, 3) containing 3D points

        Returns:
            Transformed points of shape (N, 3)
        """
        return torch.matmul(points, self.R.t()) + self.t

    def inverse(self) -> "SE3":
        """
        Compute the inverse transformation.

        Returns:
            Inverse SE3 object
        """
        R_inv = self.R.t()
        t_inv = -torch.matmul(R_inv, self.t)
        return SE3(R_inv, t_inv)

    def compose(self, other: "SE3") -> "SE3":
        """
        Compose with another SE(3) transformation: self * other

        Args:
            other: Another SE3 object

        Returns:
            Composed transformation
        """
        R = torch.matmul(self.R, other.R)
        t = torch.matmul(self.R, other.t) + self.t
        return SE3(R, t)

    def __matmul__(self, other: "SE3") -> "SE3":
        if not isinstance(other, SE3):
            return NotImplemented
        return self.compose(other)

    def normalized(self) -> "SE3":
        """
        Project the rotation back onto SO(3).

        Long chains of compositions slowly lose orthonormality; the closest
        rotation in the Frobenius sense is recovered from the SVD.

        Returns:
            SE3 object with an orthonormal rotation
        """
        U, _, Vh = torch.linalg.svd(self.R)
        R = torch.matmul(U, Vh)
        if torch.det(R) < 0:
            U = U.clone()
            U[:, 2] = -U[:, 2]
            R = torch.matmul(U, Vh)
        return SE3(R, self.t.clone())

    def allclose(self, other: "SE3", atol: float = 1e-6) -> bool:
        """Element-wise comparison of rotation and translation."""
        return torch.allclose(self.R, other.R, atol=atol) and torch.allclose(
            self.t, other.t, atol=atol
        )

    def is_rigid(self, atol: float = 1e-4) -> bool:
        """
        Check that the rotation is orthonormal with determinant +1 and that
        both parts are finite.

        Args:
            atol: Absolute tolerance on R * R^T = I and det(R) = 1

        Returns:
            True if this is a proper rigid transformation
        """
        if self.R.shape != (3, 3) or self.t.shape != (3,):
            return False
        if not (torch.isfinite(self.R).all() and torch.isfinite(self.t).all()):
            return False
        eye = torch.eye(3, dtype=self.dtype, device=self.device)
        if not torch.allclose(torch.matmul(self.R, self.R.t()), eye, atol=atol):
            return False
        return abs(torch.det(self.R).item() - 1.0) <= atol

    def clone(self) -> "SE3":
        return SE3(self.R.clone(), self.t.clone())

    def to(
        self,
        device: Optional[torch.device] = None,
        dtype: Optional[torch.dtype] = None,
    ) -> "SE3":
        device = device or self.device
        dtype = dtype or self.dtype
        return SE3(
            self.R.to(device=device, dtype=dtype),
            self.t.to(device=device, dtype=dtype),
        )

    def __repr__(self) -> str:
        return f"SE3(R=\n{self.R},\nt={self.t})"


# Euler angle convention used across the package:
#   R = Rz(yaw) @ Ry(pitch) @ Rx(roll)
# i.e. intrinsic yaw-pitch-roll (extrinsic roll-pitch-yaw about fixed x, y, z).
def euler_to_rotation_matrix(euler: torch.Tensor) -> torch.Tensor:
    """
    Convert Euler angles to rotation matrix using the ZYX convention.

    Args:
        euler: Tensor of Euler angles [roll, pitch, yaw] in radians

    Returns:
        3x3 rotation matrix
    """
    device = euler.device

    # Extract Euler angles
    roll, pitch, yaw = euler

    # Compute trigonometric functions
    cr, sr = torch.cos(roll), torch.sin(roll)
    cp, sp = torch.cos(pitch), torch.sin(pitch)
    cy, sy = torch.cos(yaw), torch.sin(yaw)

    R = torch.zeros((3, 3), dtype=euler.dtype, device=device)

    R[0, 0] = cy * cp
    R[0, 1] = cy * sp * sr - sy * cr
    R[0, 2] = cy * sp * cr + sy * sr
    R[1, 0] = sy * cp
    R[1, 1] = sy * sp * sr + cy * cr
    R[1, 2] = sy * sp * cr - cy * sr
    R[2, 0] = -sp
    R[2, 1] = cp * sr
    R[2, 2] = cp * cr

    return R


def rotation_matrix_to_euler(R: torch.Tensor) -> torch.Tensor:
    """
    Convert rotation matrix to Euler angles using the ZYX convention.

    At gimbal lock (pitch of +/- 90 degrees) roll and yaw are not separable;
    roll is reported as zero and yaw carries the remaining rotation about z.

    Args:
        R: 3x3 rotation matrix

    Returns:
        Tensor of Euler angles [roll, pitch, yaw] in radians
    """
    if abs(R[2, 0].item()) > 0.99999:
        # Gimbal lock case
        pitch = -torch.sign(R[2, 0]) * (math.pi / 2)
        yaw = torch.atan2(-R[0, 1], R[1, 1])
        roll = torch.zeros((), dtype=R.dtype, device=R.device)
    else:
        pitch = -torch.asin(R[2, 0])
        roll = torch.atan2(R[2, 1], R[2, 2])
        yaw = torch.atan2(R[1, 0], R[0, 0])

    return torch.stack([roll, pitch, yaw])


def quaternion_to_rotation_matrix(q: torch.Tensor) -> torch.Tensor:
    """
    Convert quaternion to rotation matrix.

    Args:
        q: Quaternion [w, x, y, z] where w is the scalar part

    Returns:
        3x3 rotation matrix
    """
    norm = torch.norm(q)
    if norm < 1e-12:
        raise ValueError("Cannot build a rotation from a zero quaternion")
    q = q / norm

    w, x, y, z = q

    R = torch.zeros((3, 3), dtype=q.dtype, device=q.device)

    R[0, 0] = 1 - 2 * (y * y + z * z)
    R[0, 1] = 2 * (x * y - w * z)
    R[0, 2] = 2 * (x * z + w * y)

    R[1, 0] = 2 * (x * y + w * z)
    R[1, 1] = 1 - 2 * (x * x + z * z)
    R[1, 2] = 2 * (y * z - w * x)

    R[2, 0] = 2 * (x * z - w * y)
    R[2, 1] = 2 * (y * z + w * x)
    R[2, 2] = 1 - 2 * (x * x + y * y)

    return R


def rotation_matrix_to_quaternion(R: torch.Tensor) -> torch.Tensor:
    """
    Convert rotation matrix to quaternion.

    Args:
        R: 3x3 rotation matrix

    Returns:
        Quaternion [w, x, y, z] with non-negative scalar part
    """
    trace = torch.trace(R)

    if trace > 0:
        s = 0.5 / torch.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (R[2, 1] - R[1, 2]) * s
        y = (R[0, 2] - R[2, 0]) * s
        z = (R[1, 0] - R[0, 1]) * s
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * torch.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        w = (R[2, 1] - R[1, 2]) / s
        x = 0.25 * s
        y = (R[0, 1] + R[1, 0]) / s
        z = (R[0, 2] + R[2, 0]) / s
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * torch.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        w = (R[0, 2] - R[2, 0]) / s
        x = (R[0, 1] + R[1, 0]) / s
        y = 0.25 * s
        z = (R[1, 2] + R[2, 1]) / s
    else:
        s = 2.0 * torch.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        w = (R[1, 0] - R[0, 1]) / s
        x = (R[0, 2] + R[2, 0]) / s
        y = (R[1, 2] + R[2, 1]) / s
        z = 0.25 * s

    q = torch.stack([w, x, y, z])
    if q[0] < 0:
        q = -q
    return q / torch.norm(q)
