"""Unit tests for Pose2 and StampedTransform."""

import unittest

import numpy as np

from mcl.geometry import Pose2, StampedTransform


class TestPose2(unittest.TestCase):
    """Test Pose2 construction, conversion and composition."""

    def test_yaw_wrapped_on_construction(self):
        pose = Pose2(0.0, 0.0, 2 * np.pi + 0.5)
        self.assertAlmostEqual(pose.yaw, 0.5)

    def test_non_finite_rejected(self):
        with self.assertRaises(ValueError):
            Pose2(np.nan, 0.0, 0.0)
        with self.assertRaises(ValueError):
            Pose2(0.0, np.inf, 0.0)

    def test_array_roundtrip(self):
        pose = Pose2(1.0, -2.0, 0.3)
        np.testing.assert_allclose(Pose2.from_array(pose.to_array()).to_array(), [1.0, -2.0, 0.3])

    def test_from_array_bad_shape(self):
        with self.assertRaises(ValueError):
            Pose2.from_array(np.zeros(2))

    def test_compose_and_inverse(self):
        pose = Pose2(1.0, 2.0, np.pi / 2)
        moved = pose.compose(Pose2(1.0, 0.0, 0.0))
        self.assertAlmostEqual(moved.x, 1.0)
        self.assertAlmostEqual(moved.y, 3.0)
        self.assertTrue(pose.compose(pose.inverse()).is_identity(tol=1e-12))

    def test_is_identity_exact(self):
        self.assertTrue(Pose2.identity().is_identity())
        self.assertFalse(Pose2(1e-9, 0.0, 0.0).is_identity())

    def test_rotation_is_orthonormal(self):
        R = Pose2(0.0, 0.0, 1.2).rotation
        np.testing.assert_allclose(R @ R.T, np.eye(2), atol=1e-12)
        self.assertAlmostEqual(np.linalg.det(R), 1.0)

    def test_from_matrix_renormalizes(self):
        R = Pose2(0.0, 0.0, -0.8).rotation * 0.97
        pose = Pose2.from_matrix(R, np.array([3.0, 4.0]))
        self.assertAlmostEqual(pose.yaw, -0.8)
        np.testing.assert_allclose(pose.translation, [3.0, 4.0])

    def test_from_matrix_degenerate(self):
        with self.assertRaises(ValueError):
            Pose2.from_matrix(np.zeros((2, 2)), np.zeros(2))

    def test_apply_points(self):
        pts = Pose2(1.0, 0.0, np.pi).apply(np.array([[1.0, 0.0]]))
        np.testing.assert_allclose(pts, [[0.0, 0.0]], atol=1e-12)


class TestStampedTransform(unittest.TestCase):
    """Test frame bookkeeping of stamped transforms."""

    def test_inverse_swaps_frames(self):
        tf = StampedTransform("base_link", "laser", 1.0, Pose2(0.2, 0.0, 0.0), z=0.3)
        inv = tf.inverse()
        self.assertEqual(inv.parent_frame, "laser")
        self.assertEqual(inv.child_frame, "base_link")
        self.assertAlmostEqual(inv.pose.x, -0.2)
        self.assertAlmostEqual(inv.z, -0.3)

    def test_compose_chains_frames(self):
        odom = StampedTransform("odom", "base_link", 2.0, Pose2(1.0, 0.0, np.pi / 2))
        laser = StampedTransform("base_link", "laser", 0.0, Pose2(0.5, 0.0, 0.0), z=0.3)
        chained = odom.compose(laser)
        self.assertEqual(chained.parent_frame, "odom")
        self.assertEqual(chained.child_frame, "laser")
        self.assertEqual(chained.stamp, 2.0)
        self.assertAlmostEqual(chained.pose.x, 1.0)
        self.assertAlmostEqual(chained.pose.y, 0.5)
        self.assertAlmostEqual(chained.z, 0.3)

    def test_compose_mismatched_frames(self):
        a = StampedTransform("map", "odom", 0.0, Pose2.identity())
        b = StampedTransform("base_link", "laser", 0.0, Pose2.identity())
        with self.assertRaises(ValueError):
            a.compose(b)


if __name__ == "__main__":
    unittest.main()
