"""
Tests for the shared spectrum snapshot and its listeners.
"""

import threading

import numpy as np
import pytest

from spectrum_pipeline.spectrum_state import SpectrumState


class TestSpectrumState:
    """Tests for snapshot reads and writes."""

    def test_initial_snapshot_is_zero(self):
        """Test a fresh state holds bin_count zeros."""
        state = SpectrumState(24)
        snapshot = state.get_snapshot()
        assert snapshot.shape == (24,)
        assert np.all(snapshot == 0.0)
        assert state.version == 0
        assert state.last_source is None

    def test_snapshot_is_a_copy(self):
        """Test mutating a returned snapshot does not change the state."""
        state = SpectrumState(4)
        state.update(np.array([0.1, 0.2, 0.3, 0.4]))

        snapshot = state.get_snapshot()
        snapshot[:] = 9.0

        np.testing.assert_allclose(state.get_snapshot(), [0.1, 0.2, 0.3, 0.4], rtol=1e-6)

    def test_update_return_value_is_a_copy(self):
        """Test the array returned by update() is not the stored one."""
        state = SpectrumState(2)
        returned = state.update(np.array([0.5, 0.5]))
        returned[0] = 0.0
        assert state.get_snapshot()[0] == pytest.approx(0.5)

    def test_update_clamps(self):
        """Test values are clamped to [0, 1] and NaN becomes 0."""
        state = SpectrumState(4)
        state.update(np.array([-1.0, 2.0, np.nan, 0.5]))
        np.testing.assert_allclose(state.get_snapshot(), [0.0, 1.0, 0.0, 0.5])

    def test_wrong_length_rejected(self):
        """Test a snapshot of the wrong length raises and leaves state alone."""
        state = SpectrumState(4)
        with pytest.raises(ValueError):
            state.update(np.zeros(3))
        assert state.version == 0

    def test_reset(self):
        """Test reset() writes zeros tagged as idle."""
        state = SpectrumState(3)
        state.update(np.ones(3), source="simulated")
        state.reset()
        assert np.all(state.get_snapshot() == 0.0)
        assert state.last_source == "idle"
        assert state.version == 2

    def test_seconds_since_update(self):
        """Test per-source write timestamps."""
        state = SpectrumState(3)
        assert state.seconds_since_update() == float("inf")

        state.update(np.ones(3), source="fft")
        state.update(np.ones(3), source="simulated")

        assert state.seconds_since_update("fft") < 1.0
        assert state.seconds_since_update("idle") == float("inf")
        assert state.seconds_since_update() <= state.seconds_since_update("fft")

    def test_no_torn_reads(self):
        """Test readers only ever see whole snapshots under concurrent writes."""
        state = SpectrumState(64)
        stop = threading.Event()
        torn = []

        def writer(value):
            frame = np.full(64, value, dtype=np.float32)
            while not stop.is_set():
                state.update(frame)

        def reader():
            for _ in range(2000):
                snapshot = state.get_snapshot()
                if not np.all(snapshot == snapshot[0]):
                    torn.append(snapshot)

        writers = [threading.Thread(target=writer, args=(v,)) for v in (0.25, 0.75)]
        for t in writers:
            t.start()
        reader()
        stop.set()
        for t in writers:
            t.join(timeout=2.0)

        assert torn == []


class TestSpectrumListeners:
    """Tests for subscribe/unsubscribe notifications."""

    def test_listener_called_once_per_write(self):
        """Test each write notifies each listener exactly once."""
        state = SpectrumState(2)
        received = []
        state.subscribe(received.append)

        state.update(np.array([0.1, 0.2]))
        state.update(np.array([0.3, 0.4]))

        assert len(received) == 2
        np.testing.assert_allclose(received[1], [0.3, 0.4], rtol=1e-6)

    def test_listener_gets_copy(self):
        """Test a listener mutating its argument cannot corrupt the state."""
        state = SpectrumState(2)

        def vandal(snapshot):
            snapshot[:] = 1.0

        state.subscribe(vandal)
        state.update(np.array([0.2, 0.2]))
        np.testing.assert_allclose(state.get_snapshot(), [0.2, 0.2], rtol=1e-6)

    def test_subscribe_twice_is_single_registration(self):
        """Test duplicate subscriptions are ignored."""
        state = SpectrumState(1)
        calls = []
        state.subscribe(calls.append)
        state.subscribe(calls.append)
        assert state.subscriber_count == 1

        state.update(np.array([0.5]))
        assert len(calls) == 1

    def test_unsubscribe(self):
        """Test unsubscribed listeners stop receiving updates."""
        state = SpectrumState(1)
        calls = []
        state.subscribe(calls.append)
        state.update(np.array([0.5]))
        state.unsubscribe(calls.append)
        state.unsubscribe(calls.append)
        state.update(np.array([0.6]))
        assert len(calls) == 1

    def test_failing_listener_isolated(self):
        """Test a raising listener does not stop others or the write."""
        state = SpectrumState(1)
        calls = []

        def broken(snapshot):
            raise RuntimeError("boom")

        state.subscribe(broken)
        state.subscribe(calls.append)
        state.update(np.array([0.5]))

        assert len(calls) == 1
        assert state.get_snapshot()[0] == pytest.approx(0.5)

    def test_per_listener_order(self):
        """Test each listener sees writes in production order across writers."""
        state = SpectrumState(2)
        seen = []
        state.subscribe(lambda s: seen.append((int(round(float(s[0]) * 1000)), int(s[1]))))

        def writer(tag):
            for i in range(200):
                state.update(np.array([i / 1000.0, float(tag)]))

        threads = [threading.Thread(target=writer, args=(tag,)) for tag in (0, 1)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5.0)

        assert len(seen) == 400
        for tag in (0, 1):
            sequence = [i for i, w in seen if w == tag]
            assert sequence == list(range(200))
