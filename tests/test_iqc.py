import math

import numpy as np
import pytest

from radiodsp.iqc import IQCorrector, IQCState

RATE = 1000.0
TUP = 0.004  # four samples of fade at this rate


def identity(ints=1, gain=1.0, angle=0.0):
    cm = [gain, 0.0, 0.0, 0.0] * ints
    cc = [math.cos(angle), 0.0, 0.0, 0.0] * ints
    cs = [math.sin(angle), 0.0, 0.0, 0.0] * ints
    return cm, cc, cs


def signal(n):
    return 0.3 * np.exp(1j * 0.4 * np.arange(n))


def test_not_running_passes_input_through():
    q = IQCorrector(RATE, 4, TUP, 10)
    x = signal(8)
    np.testing.assert_allclose(q.process(x), x)


def test_set_values_round_trip():
    q = IQCorrector(RATE, 2, TUP, 10)
    cm = np.arange(8, dtype=float)
    cc = np.arange(8, dtype=float) + 10
    cs = np.arange(8, dtype=float) + 20
    q.set_values(cm, cc, cs)
    got = q.values()
    np.testing.assert_allclose(got[0], cm)
    np.testing.assert_allclose(got[1], cc)
    np.testing.assert_allclose(got[2], cs)
    assert q.state == IQCState.RUN


def test_wrong_table_size_raises():
    q = IQCorrector(RATE, 2, TUP, 10)
    with pytest.raises(ValueError):
        q.set_values([1.0] * 4, [1.0] * 8, [0.0] * 8)


def test_zero_intervals_rejected():
    with pytest.raises(ValueError):
        IQCorrector(RATE, 0, TUP, 10)


def test_phase_rotation_applied():
    q = IQCorrector(RATE, 1, TUP, 10, run=True)
    angle = 0.5
    q.set_values(*identity(angle=angle))
    x = signal(6)
    np.testing.assert_allclose(q.process(x), x * np.exp(1j * angle), atol=1e-12)


def test_magnitude_factor_keeps_phase():
    q = IQCorrector(RATE, 1, TUP, 10, run=True)
    q.set_values([1.0, 1.0, 0.0, 0.0], [1.0, 0.0, 0.0, 0.0], [0.0, 0.0, 0.0, 0.0])
    x = signal(6)
    y = q.process(x)
    np.testing.assert_allclose(np.angle(y), np.angle(x), atol=1e-12)
    assert np.all(np.abs(y) > np.abs(x))


def test_start_fades_in_and_becomes_idle():
    q = IQCorrector(RATE, 1, TUP, 10)
    q.start(*identity(gain=2.0))
    assert q.run
    assert q.busy
    assert q.wait_idle(timeout=0) is False
    x = signal(10)
    y = q.process(x)
    # The fade starts from the uncorrected signal.
    assert y[0] == pytest.approx(x[0])
    np.testing.assert_allclose(y[5:], 2.0 * x[5:], atol=1e-12)
    mags = np.abs(y[:6]) / np.abs(x[:6])
    assert np.all(np.diff(mags) >= -1e-12)
    assert q.busy is False
    assert q.state == IQCState.RUN
    assert q.wait_idle(timeout=0) is True


def test_identity_start_leaves_signal_unchanged():
    q = IQCorrector(RATE, 3, TUP, 10)
    q.start(*identity(ints=3))
    x = signal(12)
    np.testing.assert_allclose(q.process(x), x, atol=1e-12)


def test_swap_moves_from_old_to_new():
    q = IQCorrector(RATE, 1, TUP, 10, run=True)
    q.set_values(*identity(gain=1.0))
    q.swap(*identity(gain=3.0))
    assert q.state == IQCState.SWAP
    x = signal(10)
    y = q.process(x)
    assert y[0] == pytest.approx(x[0])
    np.testing.assert_allclose(y[5:], 3.0 * x[5:], atol=1e-12)
    np.testing.assert_allclose(q.values()[0], [3.0, 0.0, 0.0, 0.0])
    assert q.busy is False


def test_end_fades_out_and_stops():
    q = IQCorrector(RATE, 1, TUP, 10)
    q.start(*identity(gain=2.0))
    q.process(signal(10))
    q.end()
    x = signal(10)
    y = q.process(x)
    assert y[0] == pytest.approx(2.0 * x[0])
    np.testing.assert_allclose(y[5:], x[5:], atol=1e-12)
    assert q.state == IQCState.DONE
    assert q.run is False
    np.testing.assert_allclose(q.process(x), x)


def test_watchdog_counts_full_passes():
    q = IQCorrector(RATE, 2, TUP, 1, run=True)
    q.set_values(*identity(ints=2))
    q.process([0.25, 0.75])
    assert q.dog_count == 1
    q.process([0.25, 0.25])
    assert q.dog_count == 1
    q.process([0.75])
    assert q.dog_count == 2


def test_watchdog_needs_samples_per_interval():
    q = IQCorrector(RATE, 2, TUP, 2, run=True)
    q.set_values(*identity(ints=2))
    q.process([0.25, 0.75, 0.75])
    assert q.dog_count == 0
    q.process([0.25])
    assert q.dog_count == 1


def test_flush_keeps_state():
    q = IQCorrector(RATE, 1, TUP, 10, run=True)
    q.set_values(*identity(gain=2.0))
    q.flush()
    x = signal(4)
    np.testing.assert_allclose(q.process(x), 2.0 * x, atol=1e-12)