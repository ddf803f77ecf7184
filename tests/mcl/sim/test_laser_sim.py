"""Unit tests for synthetic scan and odometry generation."""

import unittest

import numpy as np

from mcl.geometry import Pose2
from mcl.sim import simulate_odometry, simulate_scan
from mcl.world import Entity, WorldModel


class TestSimulateScan(unittest.TestCase):
    def setUp(self):
        self.world = WorldModel.from_segments([([2.0, -5.0], [2.0, 5.0])])

    def test_forward_beam_hits_wall(self):
        scan = simulate_scan(self.world, Pose2(0.0, 0.0, 0.0), num_beams=3, angle_min=-0.1, angle_max=0.1)
        self.assertEqual(len(scan), 3)
        self.assertAlmostEqual(scan.ranges[1], 2.0)
        self.assertAlmostEqual(scan.angle_max, 0.1)

    def test_laser_offset_shifts_origin(self):
        scan = simulate_scan(
            self.world, Pose2(0.0, 0.0, 0.0), laser_offset=Pose2(0.5, 0.0, 0.0),
            num_beams=1, angle_min=0.0, angle_max=0.0,
        )
        self.assertAlmostEqual(scan.ranges[0], 1.5)

    def test_misses_report_range_max(self):
        scan = simulate_scan(
            self.world, Pose2(0.0, 0.0, np.pi), num_beams=5, range_max=8.0,
            noise_std=0.1, rng=np.random.default_rng(0),
        )
        np.testing.assert_array_equal(scan.ranges, np.full(5, 8.0))

    def test_noisy_hits_stay_below_range_max(self):
        scan = simulate_scan(
            self.world, Pose2(0.0, 0.0, 0.0), num_beams=50, angle_min=-0.2, angle_max=0.2,
            range_max=2.05, noise_std=0.5, rng=np.random.default_rng(1),
        )
        self.assertTrue(np.all(scan.ranges < 2.05))
        self.assertTrue(np.all(scan.ranges >= scan.range_min))

    def test_object_above_scan_plane_invisible(self):
        world = WorldModel([Entity("shelf", [[1, -1], [1.5, -1], [1.5, 1], [1, 1]], z_min=1.0, z_max=1.2)])
        scan = simulate_scan(world, Pose2(0.0, 0.0, 0.0), laser_height=0.3, num_beams=1,
                             angle_min=0.0, angle_max=0.0)
        self.assertEqual(scan.ranges[0], scan.range_max)

    def test_points_in_laser_frame(self):
        scan = simulate_scan(self.world, Pose2(0.0, 0.0, 0.0), num_beams=3, angle_min=-0.1, angle_max=0.1)
        points = scan.to_points()
        np.testing.assert_allclose(points[:, 0], 2.0, atol=1e-9)


class TestSimulateOdometry(unittest.TestCase):
    def test_noise_free_matches_truth(self):
        truth = [Pose2(0.1 * k, 0.0, 0.02 * k) for k in range(10)]
        odom = simulate_odometry(truth, sigma_trans=0.0, sigma_rot=0.0)
        for t, o in zip(truth, odom):
            np.testing.assert_allclose(o.to_array(), t.to_array(), atol=1e-12)

    def test_drift_accumulates(self):
        truth = [Pose2(0.5 * k, 0.0, 0.0) for k in range(100)]
        odom = simulate_odometry(truth, sigma_trans=0.05, sigma_rot=0.01, rng=np.random.default_rng(2))
        self.assertEqual(len(odom), 100)
        self.assertEqual(odom[0], truth[0])
        early = np.hypot(odom[5].x - truth[5].x, odom[5].y - truth[5].y)
        late = np.hypot(odom[-1].x - truth[-1].x, odom[-1].y - truth[-1].y)
        self.assertGreater(late, early)

    def test_stationary_has_no_drift(self):
        truth = [Pose2(1.0, 2.0, 0.3)] * 5
        odom = simulate_odometry(truth, rng=np.random.default_rng(3))
        for o in odom:
            np.testing.assert_allclose(o.to_array(), [1.0, 2.0, 0.3], atol=1e-12)

    def test_empty(self):
        self.assertEqual(simulate_odometry([]), [])


if __name__ == "__main__":
    unittest.main()
