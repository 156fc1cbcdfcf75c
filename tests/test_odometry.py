import unittest

import torch

from torchvo.geometry.se3 import SE3
from torchvo.odometry import OdometryStatus, VisualOdometry
from torchvo.registration.motion_estimation import EstimationResult, MotionEstimation
from torchvo.structures.rgbd_frame import RGBDFrame


class SequenceMotionEstimation(MotionEstimation):
    """Plays back a list of camera-frame results, one per frame."""

    def __init__(self, results, config=None):
        super().__init__(config)
        self.results = list(results)
        self.reset_calls = 0

    def reset(self):
        self.reset_calls += 1

    def estimate_motion_impl(self, frame, prediction):
        return self.results.pop(0)


class TestVisualOdometry(unittest.TestCase):
    def setUp(self):
        self.step = SE3.from_rpy(0.0, 0.0, 0.1, translation=[0.2, 0.0, 0.0])
        self.frame = RGBDFrame(timestamp=0.0)

    def _odometry(self, results, config=None):
        estimation = SequenceMotionEstimation(
            results, config={"base_to_camera": SE3.identity()}
        )
        return VisualOdometry(estimation, config=config)

    def test_initial_state(self):
        odometry = self._odometry([])
        self.assertEqual(odometry.get_status(), OdometryStatus.INITIALIZING)
        self.assertEqual(odometry.frame_idx, 0)
        self.assertTrue(odometry.get_current_pose().allclose(SE3.identity()))
        self.assertEqual(odometry.motion_estimation.reset_calls, 1)

    def test_motion_is_composed_on_the_left(self):
        initial = SE3.from_rpy(0.0, 0.0, 0.5, translation=[1.0, 2.0, 0.0])
        odometry = self._odometry(
            [EstimationResult(self.step)], config={"initial_pose": initial}
        )

        pose = odometry.process_frame(self.frame)

        self.assertTrue(pose.allclose(self.step.compose(initial), atol=1e-6))
        self.assertFalse(pose.allclose(initial.compose(self.step), atol=1e-3))
        self.assertEqual(odometry.get_status(), OdometryStatus.OK)
        self.assertTrue(odometry.get_relative_motion().allclose(self.step))

    def test_poses_accumulate(self):
        odometry = self._odometry([EstimationResult(self.step)] * 3)
        for _ in range(3):
            odometry.process_frame(self.frame)

        expected = self.step.compose(self.step.compose(self.step))
        self.assertTrue(odometry.get_current_pose().allclose(expected, atol=1e-6))
        self.assertEqual(odometry.frame_idx, 3)

    def test_failure_keeps_pose_and_marks_lost(self):
        odometry = self._odometry(
            [EstimationResult(self.step), EstimationResult.failed(), EstimationResult(self.step)]
        )

        first = odometry.process_frame(self.frame)
        second = odometry.process_frame(self.frame)

        self.assertIs(second, first)
        self.assertEqual(odometry.get_status(), OdometryStatus.LOST)
        self.assertEqual(odometry.frame_idx, 1)

        odometry.process_frame(self.frame)
        self.assertEqual(odometry.get_status(), OdometryStatus.OK)

    def test_pose_is_renormalized(self):
        noisy = SE3(self.step.R * 1.001, self.step.t)
        odometry = self._odometry(
            [EstimationResult(noisy)] * 2, config={"normalize_every": 2}
        )
        odometry.process_frame(self.frame)
        odometry.process_frame(self.frame)

        R = odometry.get_current_pose().R
        self.assertTrue(torch.allclose(R @ R.t(), torch.eye(3), atol=1e-5))

    def test_reset(self):
        odometry = self._odometry([EstimationResult(self.step)])
        odometry.process_frame(self.frame)
        odometry.reset()

        self.assertEqual(odometry.get_status(), OdometryStatus.INITIALIZING)
        self.assertEqual(odometry.frame_idx, 0)
        self.assertTrue(odometry.get_current_pose().allclose(SE3.identity()))
        self.assertEqual(odometry.motion_estimation.reset_calls, 2)

    def test_float32_motion_onto_float64_pose(self):
        initial = SE3.from_rpy(0.0, 0.0, 0.5, translation=[1.0, 2.0, 0.0], dtype=torch.float64)
        odometry = self._odometry(
            [EstimationResult(self.step)], config={"initial_pose": initial}
        )

        pose = odometry.process_frame(self.frame)

        self.assertEqual(pose.dtype, torch.float64)
        expected = self.step.to(dtype=torch.float64).compose(initial)
        self.assertTrue(pose.allclose(expected, atol=1e-6))
