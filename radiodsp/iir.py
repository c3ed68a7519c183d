"""Biquad IIR stages: a real-valued notch, a complex peaking filter and a bank of peaks."""

from __future__ import annotations

import math
import threading
from collections.abc import Sequence

import numpy as np

TWOPI = 2.0 * math.pi


class SNotch:
    """Second-order notch applied to the in-phase part of a complex signal.

    The quadrature part passes through unchanged. ``bandwidth`` is a normalised
    width: the pole radius is ``1 - 3 * bandwidth``.
    """

    def __init__(self, rate: float, freq: float, bandwidth: float, *, run: bool = True) -> None:
        self.rate = float(rate)
        self.f = freq
        self.bw = bandwidth
        self.run = run
        self.a0 = self.a1 = self.a2 = self.b1 = self.b2 = 0.0
        self.x1 = self.x2 = self.y1 = self.y2 = 0.0
        self._lock = threading.RLock()
        self._calc()

    def _calc(self) -> None:
        fn = self.f / self.rate
        csn = math.cos(TWOPI * fn)
        qr = 1.0 - 3.0 * self.bw
        qk = (1.0 - 2.0 * qr * csn + qr * qr) / (2.0 * (1.0 - csn))
        self.a0 = qk
        self.a1 = -2.0 * qk * csn
        self.a2 = qk
        self.b1 = 2.0 * qr * csn
        self.b2 = -qr * qr

    def set_freq(self, freq: float) -> None:
        """Move the notch to a new frequency."""
        with self._lock:
            self.f = freq
            self._calc()

    def flush(self) -> None:
        """Clear the filter history."""
        with self._lock:
            self.x1 = self.x2 = self.y1 = self.y2 = 0.0

    def process(self, samples) -> np.ndarray:
        """Return the filtered buffer, or an unchanged copy when the stage is off."""
        with self._lock:
            buff = np.array(samples, dtype=np.complex128).reshape(-1)
            if not self.run:
                return buff
            real = np.empty(buff.size, dtype=np.float64)
            a0, a1, a2, b1, b2 = self.a0, self.a1, self.a2, self.b1, self.b2
            x1, x2, y1, y2 = self.x1, self.x2, self.y1, self.y2
            for i, x0 in enumerate(buff.real.tolist()):
                y0 = a0 * x0 + a1 * x1 + a2 * x2 + b1 * y1 + b2 * y2
                y2, y1 = y1, y0
                x2, x1 = x1, x0
                real[i] = y0
            self.x1, self.x2, self.y1, self.y2 = x1, x2, y1, y2
            return real + 1j * buff.imag


class SPeak:
    """Cascade of identical biquad peaking stages applied to I and Q alike.

    Design 0 is a resonator peak; design 1 is a constant-skirt peak whose
    centre frequency is held at 200 Hz or above.
    """

    def __init__(
        self,
        rate: float,
        freq: float,
        bandwidth: float,
        gain: float,
        nstages: int,
        design: int = 0,
        *,
        run: bool = True,
    ) -> None:
        if nstages < 1:
            raise ValueError("nstages must be at least 1")
        if design not in (0, 1):
            raise ValueError(f"unknown peaking filter design: {design}")
        self.rate = float(rate)
        self.f = freq
        self.bw = bandwidth
        self.gain = gain
        self.nstages = nstages
        self.design = design
        self.run = run
        self.cbw = 0.0
        self.fgain = 1.0
        self.a0 = self.a1 = self.a2 = self.b1 = self.b2 = 0.0
        self._lock = threading.RLock()
        self._x1 = [0j] * nstages
        self._x2 = [0j] * nstages
        self._y1 = [0j] * nstages
        self._y2 = [0j] * nstages
        self._calc()

    def _calc(self) -> None:
        if self.design == 0:
            self._calc_resonator()
        else:
            self._calc_skirt()

    def _calc_resonator(self) -> None:
        ratio = self.bw / self.f
        if self.nstages == 4:
            bw_parm = 2.4
            f_corr = 1.0 - 0.160 * ratio + 1.440 * ratio * ratio
            g_corr = 1.0 - 1.003 * ratio + 3.990 * ratio * ratio
        else:
            bw_parm = 1.0
            f_corr = 1.0
            g_corr = 1.0
        self.fgain = self.gain / g_corr
        fn = self.f / self.rate / f_corr
        csn = math.cos(TWOPI * fn)
        qr = 1.0 - 3.0 * self.bw / self.rate * bw_parm
        qk = (1.0 - 2.0 * qr * csn + qr * qr) / (2.0 * (1.0 - csn))
        self.a0 = 1.0 - qk
        self.a1 = 2.0 * (qk - qr) * csn
        self.a2 = qr * qr - qk
        self.b1 = 2.0 * qr * csn
        self.b2 = -qr * qr

    def _calc_skirt(self) -> None:
        if self.f < 200.0:
            self.f = 200.0
        ratio = self.bw / self.f
        a_const = 2.5
        f_min = 50.0
        if self.nstages == 4:
            bw_parm = 5.0
            bw_corr = 1.13 * ratio - 0.956 * ratio * ratio
        else:
            bw_parm = 1.0
            bw_corr = 1.0
        if self.f < f_min:
            self.f = f_min
        w0 = TWOPI * self.f / self.rate
        sn = math.sin(w0)
        self.cbw = bw_corr * self.f
        half = 0.5 * self.cbw * bw_parm
        c = sn * math.sinh(0.5 * math.log((self.f + half) / (self.f - half)) * w0 / sn)
        den = 1.0 + c / a_const
        self.a0 = (1.0 + c * a_const) / den
        self.a1 = -2.0 * math.cos(w0) / den
        self.a2 = (1.0 - c * a_const) / den
        self.b1 = -self.a1
        self.b2 = -(1.0 - c / a_const) / den
        self.fgain = self.gain / math.pow(a_const * a_const, float(self.nstages))

    def configure(
        self,
        freq: float | None = None,
        bandwidth: float | None = None,
        gain: float | None = None,
    ) -> None:
        """Change any of frequency, bandwidth and gain; None keeps the current value."""
        with self._lock:
            if freq is not None:
                self.f = freq
            if bandwidth is not None:
                self.bw = bandwidth
            if gain is not None:
                self.gain = gain
            self._calc()

    def flush(self) -> None:
        """Clear the history of every stage."""
        with self._lock:
            n = self.nstages
            self._x1 = [0j] * n
            self._x2 = [0j] * n
            self._y1 = [0j] * n
            self._y2 = [0j] * n

    def process(self, samples) -> np.ndarray:
        """Return the filtered buffer, or an unchanged copy when the stage is off."""
        with self._lock:
            buff = np.array(samples, dtype=np.complex128).reshape(-1)
            if not self.run:
                return buff
            out = np.empty(buff.size, dtype=np.complex128)
            a0, a1, a2, b1, b2 = self.a0, self.a1, self.a2, self.b1, self.b2
            x1, x2, y1, y2 = self._x1, self._x2, self._y1, self._y2
            stages = range(self.nstages)
            fgain = self.fgain
            for i, sample in enumerate(buff.tolist()):
                x = fgain * sample
                for n in stages:
                    y = a0 * x + a1 * x1[n] + a2 * x2[n] + b1 * y1[n] + b2 * y2[n]
                    y2[n] = y1[n]
                    y1[n] = y
                    x2[n] = x1[n]
                    x1[n] = x
                    x = y
                out[i] = x
            return out


class MPeak:
    """Bank of constant-skirt peaking filters whose outputs are summed."""

    def __init__(
        self,
        rate: float,
        enabled: Sequence[bool],
        freqs: Sequence[float],
        bandwidths: Sequence[float],
        gains: Sequence[float],
        nstages: int,
        *,
        run: bool = True,
    ) -> None:
        count = len(enabled)
        if not (len(freqs) == len(bandwidths) == len(gains) == count):
            raise ValueError("enabled, freqs, bandwidths and gains must have equal lengths")
        self.rate = float(rate)
        self.run = run
        self.nstages = nstages
        self.npeaks = count
        self.enabled = [bool(e) for e in enabled]
        self.filters = [
            SPeak(rate, f, bw, g, nstages, design=1)
            for f, bw, g in zip(freqs, bandwidths, gains)
        ]
        self._lock = threading.RLock()

    def _filter(self, index: int) -> SPeak:
        if not 0 <= index < len(self.filters):
            raise IndexError(f"no peaking filter at index {index}")
        return self.filters[index]

    def set_filter_enabled(self, index: int, enabled: bool) -> None:
        """Switch one filter of the bank on or off."""
        with self._lock:
            self._filter(index)
            self.enabled[index] = bool(enabled)

    def set_filter_freq(self, index: int, freq: float) -> None:
        """Set the centre frequency of one filter."""
        with self._lock:
            self._filter(index).configure(freq=freq)

    def set_filter_bandwidth(self, index: int, bandwidth: float) -> None:
        """Set the bandwidth of one filter."""
        with self._lock:
            self._filter(index).configure(bandwidth=bandwidth)

    def set_filter_gain(self, index: int, gain: float) -> None:
        """Set the gain of one filter."""
        with self._lock:
            self._filter(index).configure(gain=gain)

    def flush(self) -> None:
        """Clear the history of every filter."""
        with self._lock:
            for peak in self.filters:
                peak.flush()

    def process(self, samples) -> np.ndarray:
        """Return the sum of the enabled filters' outputs, or a copy when off."""
        with self._lock:
            buff = np.array(samples, dtype=np.complex128).reshape(-1)
            if not self.run:
                return buff
            mix = np.zeros(buff.size, dtype=np.complex128)
            active = zip(self.filters[: self.npeaks], self.enabled[: self.npeaks])
            for peak, on in active:
                if on:
                    mix += peak.process(buff)
            return mix