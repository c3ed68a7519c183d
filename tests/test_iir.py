import numpy as np
import pytest

from radiodsp.iir import MPeak, SNotch, SPeak

RATE = 48000.0


def _cos(freq, n, rate=RATE):
    return np.cos(2.0 * np.pi * freq * np.arange(n) / rate).astype(np.complex128)


def _tone(freq, n, rate=RATE):
    return np.exp(2j * np.pi * freq * np.arange(n) / rate)


# ----------------------------------------------------------------- SNotch


def test_snotch_removes_tone_at_notch_frequency():
    notch = SNotch(RATE, 1000.0, 0.005)
    out = notch.process(_cos(1000.0, 8000))
    assert np.max(np.abs(out.real[-1000:])) < 0.01


def test_snotch_passes_dc_with_unit_gain():
    notch = SNotch(RATE, 1000.0, 0.005)
    out = notch.process(np.ones(8000, dtype=np.complex128))
    assert out.real[-1] == pytest.approx(1.0, abs=1e-6)


def test_snotch_leaves_quadrature_untouched():
    notch = SNotch(RATE, 1000.0, 0.005)
    data = _tone(1000.0, 500)
    out = notch.process(data)
    assert np.array_equal(out.imag, data.imag)


def test_snotch_off_returns_copy():
    notch = SNotch(RATE, 1000.0, 0.005, run=False)
    data = _tone(700.0, 64)
    out = notch.process(data)
    assert np.array_equal(out, data)
    out[0] = 99.0
    assert data[0] != 99.0


def test_snotch_chunked_matches_whole():
    data = _cos(440.0, 600) + 0.3
    whole = SNotch(RATE, 1000.0, 0.005).process(data)
    chunked = SNotch(RATE, 1000.0, 0.005)
    parts = np.concatenate([chunked.process(data[:250]), chunked.process(data[250:])])
    assert np.allclose(whole, parts)


def test_snotch_flush_restores_fresh_state():
    data = _cos(440.0, 300)
    notch = SNotch(RATE, 1000.0, 0.005)
    notch.process(_cos(2000.0, 300))
    notch.flush()
    assert np.allclose(notch.process(data), SNotch(RATE, 1000.0, 0.005).process(data))


def test_snotch_set_freq_moves_notch():
    notch = SNotch(RATE, 1000.0, 0.005)
    notch.set_freq(2500.0)
    out = notch.process(_cos(2500.0, 8000))
    assert notch.f == 2500.0
    assert np.max(np.abs(out.real[-1000:])) < 0.01


# ------------------------------------------------------------------ SPeak


def test_speak_resonator_unit_gain_at_centre():
    peak = SPeak(RATE, 600.0, 100.0, 1.0, 1, design=0)
    out = peak.process(_tone(600.0, 6000))
    assert np.abs(out[-500:]).mean() == pytest.approx(1.0, abs=0.05)


def test_speak_resonator_attenuates_far_frequencies():
    centre = SPeak(RATE, 600.0, 100.0, 1.0, 1, design=0).process(_tone(600.0, 6000))
    far = SPeak(RATE, 600.0, 100.0, 1.0, 1, design=0).process(_tone(5000.0, 6000))
    assert np.abs(far[-500:]).mean() < 0.2 * np.abs(centre[-500:]).mean()


def test_speak_is_linear():
    data = _tone(800.0, 400) + 0.1
    one = SPeak(RATE, 600.0, 100.0, 1.0, 4, design=1).process(data)
    two = SPeak(RATE, 600.0, 100.0, 1.0, 4, design=1).process(2.0 * data)
    assert np.allclose(two, 2.0 * one)


def test_speak_chunked_matches_whole():
    data = _tone(650.0, 500)
    whole = SPeak(RATE, 600.0, 100.0, 2.0, 4, design=0).process(data)
    chunked = SPeak(RATE, 600.0, 100.0, 2.0, 4, design=0)
    parts = np.concatenate([chunked.process(data[:123]), chunked.process(data[123:])])
    assert np.allclose(whole, parts)


def test_speak_flush_restores_fresh_state():
    data = _tone(600.0, 300)
    peak = SPeak(RATE, 600.0, 100.0, 1.0, 2, design=1)
    peak.process(_tone(900.0, 300))
    peak.flush()
    assert np.allclose(peak.process(data), SPeak(RATE, 600.0, 100.0, 1.0, 2, design=1).process(data))


def test_speak_skirt_design_clamps_low_frequency():
    peak = SPeak(RATE, 120.0, 50.0, 1.0, 1, design=1)
    assert peak.f == 200.0
    peak.configure(freq=80.0)
    assert peak.f == 200.0


def test_speak_configure_keeps_unspecified_values():
    peak = SPeak(RATE, 600.0, 100.0, 1.0, 1, design=0)
    peak.configure(gain=3.0)
    assert (peak.f, peak.bw, peak.gain) == (600.0, 100.0, 3.0)
    assert peak.fgain == pytest.approx(3.0)


def test_speak_rejects_unknown_design():
    with pytest.raises(ValueError):
        SPeak(RATE, 600.0, 100.0, 1.0, 1, design=5)


def test_speak_rejects_zero_stages():
    with pytest.raises(ValueError):
        SPeak(RATE, 600.0, 100.0, 1.0, 0)


def test_speak_off_returns_copy():
    peak = SPeak(RATE, 600.0, 100.0, 1.0, 1, run=False)
    data = _tone(600.0, 32)
    assert np.array_equal(peak.process(data), data)


# ------------------------------------------------------------------ MPeak


def test_mpeak_single_filter_matches_speak():
    data = _tone(700.0, 400)
    bank = MPeak(RATE, [True], [700.0], [100.0], [1.5], 4)
    single = SPeak(RATE, 700.0, 100.0, 1.5, 4, design=1)
    assert np.allclose(bank.process(data), single.process(data))


def test_mpeak_sums_enabled_filters():
    data = _tone(900.0, 300)
    bank = MPeak(RATE, [True, True], [700.0, 1200.0], [100.0, 80.0], [1.0, 2.0], 1)
    a = SPeak(RATE, 700.0, 100.0, 1.0, 1, design=1).process(data)
    b = SPeak(RATE, 1200.0, 80.0, 2.0, 1, design=1).process(data)
    assert np.allclose(bank.process(data), a + b)


def test_mpeak_all_disabled_gives_silence():
    bank = MPeak(RATE, [False, False], [700.0, 1200.0], [100.0, 80.0], [1.0, 1.0], 1)
    out = bank.process(_tone(700.0, 100))
    assert np.array_equal(out, np.zeros(100, dtype=np.complex128))


def test_mpeak_enable_toggle():
    data = _tone(700.0, 200)
    bank = MPeak(RATE, [False], [700.0], [100.0], [1.0], 1)
    bank.set_filter_enabled(0, True)
    expected = SPeak(RATE, 700.0, 100.0, 1.0, 1, design=1).process(data)
    assert np.allclose(bank.process(data), expected)


def test_mpeak_setters_update_filter():
    bank = MPeak(RATE, [True], [700.0], [100.0], [1.0], 1)
    bank.set_filter_freq(0, 900.0)
    bank.set_filter_bandwidth(0, 60.0)
    bank.set_filter_gain(0, 4.0)
    peak = bank.filters[0]
    assert (peak.f, peak.bw, peak.gain) == (900.0, 60.0, 4.0)


def test_mpeak_bad_index_raises():
    bank = MPeak(RATE, [True], [700.0], [100.0], [1.0], 1)
    with pytest.raises(IndexError):
        bank.set_filter_freq(3, 900.0)


def test_mpeak_mismatched_lengths_raise():
    with pytest.raises(ValueError):
        MPeak(RATE, [True, True], [700.0], [100.0], [1.0], 1)


def test_mpeak_off_returns_copy():
    bank = MPeak(RATE, [True], [700.0], [100.0], [1.0], 1, run=False)
    data = _tone(700.0, 50)
    assert np.array_equal(bank.process(data), data)