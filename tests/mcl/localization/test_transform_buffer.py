"""Tests for the in-memory collaborators of the localization cycle."""

import threading

import numpy as np
import pytest

from mcl.geometry import Pose2, StampedTransform
from mcl.localization import (
    MessageQueue,
    RecordingPublisher,
    TransformBuffer,
    TransformUnavailableError,
)
from mcl.sensors import ParticleArray


@pytest.fixture
def buffer():
    buf = TransformBuffer()
    buf.set_transform(StampedTransform("odom", "base_link", 0.0, Pose2(1.0, 0.0, np.pi / 2)))
    buf.set_transform(StampedTransform("base_link", "laser", 0.0, Pose2(0.2, 0.0, 0.0), z=0.3))
    return buf


class TestTransformBuffer:
    def test_direct_lookup(self, buffer):
        tf = buffer.lookup_transform("base_link", "laser", 2.0)
        assert (tf.parent_frame, tf.child_frame, tf.stamp) == ("base_link", "laser", 2.0)
        assert tf.pose.x == pytest.approx(0.2)
        assert tf.z == pytest.approx(0.3)

    def test_inverse_lookup(self, buffer):
        tf = buffer.lookup_transform("laser", "base_link", 0.0)
        assert tf.pose.x == pytest.approx(-0.2)
        assert tf.z == pytest.approx(-0.3)

    def test_chained_lookup(self, buffer):
        tf = buffer.lookup_transform("odom", "laser", 0.0)
        np.testing.assert_allclose(tf.pose.to_array(), [1.0, 0.2, np.pi / 2], atol=1e-12)

    def test_missing_transform(self, buffer):
        assert not buffer.wait_for_transform("map", "odom", 0.0, 0.1)
        with pytest.raises(TransformUnavailableError, match="map"):
            buffer.lookup_transform("map", "odom", 0.0)

    def test_lookup_error_is_lookup_error(self):
        with pytest.raises(LookupError):
            TransformBuffer().lookup_transform("a", "b", 0.0)

    def test_send_and_remove(self, buffer):
        buffer.send_transform(StampedTransform("map", "odom", 1.0, Pose2(0.5, 0.0, 0.0)))
        assert buffer.can_transform("map", "odom")
        buffer.remove_transform("map", "odom")
        assert not buffer.can_transform("map", "odom")
        buffer.remove_transform("map", "odom")


class TestRecordingPublisher:
    def test_records_messages(self):
        publisher = RecordingPublisher()
        assert publisher.last is None
        msg = ParticleArray("map", 0.0, np.zeros((2, 3)), np.full(2, 0.5))
        publisher.publish(msg)
        assert publisher.last is msg
        assert len(publisher.messages) == 1


class TestMessageQueue:
    def test_latest_wins(self):
        queue = MessageQueue()
        queue.put("first")
        queue.put("second")
        assert queue.drain() == "second"
        assert queue.drain() is None

    def test_concurrent_puts(self):
        queue = MessageQueue()
        threads = [threading.Thread(target=queue.put, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert queue.drain() in range(8)
        assert queue.drain() is None
