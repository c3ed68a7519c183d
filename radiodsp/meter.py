"""Signal level meter with average, peak and gain readings in dB."""

from __future__ import annotations

import math
import struct
import threading
from collections.abc import Callable, MutableMapping

import numpy as np

_MBITS = 11
_MMASK = (1 << _MBITS) - 1
_MCONV = math.log10(2.0)
# log2 of the mantissa (1 + m / 2048) for each of the 2048 mantissa buckets.
_MTABLE = np.log2(1.0 + np.arange(1 << _MBITS, dtype=np.float64) / float(1 << _MBITS))

FLOOR_DB = -400.0


def mlog10(val: float) -> float:
    """Fast table-driven base-10 logarithm taken from the float's bit pattern."""
    (bits,) = struct.unpack("<Q", struct.pack("<d", float(val)))
    exponent = ((bits >> 52) & 2047) - 1023
    mantissa = (bits >> (52 - _MBITS)) & _MMASK
    return _MCONV * (exponent + float(_MTABLE[mantissa]))


def _mlog10_array(values: np.ndarray) -> np.ndarray:
    bits = np.ascontiguousarray(values, dtype=np.float64).view(np.uint64)
    exponent = ((bits >> np.uint64(52)) & np.uint64(2047)).astype(np.int64) - 1023
    mantissa = ((bits >> np.uint64(52 - _MBITS)) & np.uint64(_MMASK)).astype(np.intp)
    return _MCONV * (exponent + _MTABLE[mantissa])


class Meter:
    """Tracks the smoothed average power and decaying peak power of a complex signal."""

    def __init__(
        self,
        rate: float,
        tau_average: float,
        tau_peak_decay: float,
        *,
        average: str = "average",
        peak: str = "peak",
        gain_name: str | None = None,
        run: bool = True,
        enabled: Callable[[], bool] | None = None,
        results: MutableMapping[str, float] | None = None,
    ) -> None:
        self.rate = float(rate)
        self.tau_average = tau_average
        self.tau_peak_decay = tau_peak_decay
        self.average_name = average
        self.peak_name = peak
        self.gain_name = gain_name
        self.run = run
        self.enabled = enabled
        self.results: MutableMapping[str, float] = {} if results is None else results
        self.mult_average = math.exp(-1.0 / (self.rate * self.tau_average))
        self.mult_peak = math.exp(-1.0 / (self.rate * self.tau_peak_decay))
        self.avg = FLOOR_DB
        self.peak = 0.0
        self._lock = threading.RLock()
        self.flush()

    def flush(self) -> None:
        """Reset the running average and peak and mark all readings as silent."""
        with self._lock:
            self.avg = FLOOR_DB
            self.peak = 0.0
            self.results[self.average_name] = FLOOR_DB
            self.results[self.peak_name] = FLOOR_DB
            if self.gain_name is not None:
                self.results[self.gain_name] = FLOOR_DB

    def _is_running(self) -> bool:
        external = True if self.enabled is None else bool(self.enabled())
        return bool(self.run) and external

    def process(self, samples, gain: float | None = None) -> None:
        """Update the readings from a buffer of complex samples."""
        with self._lock:
            if not self._is_running():
                self.results[self.average_name] = FLOOR_DB
                self.results[self.peak_name] = FLOOR_DB
                if self.gain_name is not None:
                    self.results[self.gain_name] = 0.0
                return
            buff = np.asarray(samples, dtype=np.complex128)
            power = buff.real * buff.real + buff.imag * buff.imag
            if power.size:
                levels = 10.0 * _mlog10_array(power + 1.0e-40)
                keep = self.mult_average
                blend = 1.0 - keep
                avg = self.avg
                for level in levels:
                    avg = avg * keep + blend * level
                self.avg = float(avg)
                self.peak *= self.mult_peak ** power.size
                new_peak = float(power.max())
            else:
                new_peak = 0.0
            if new_peak > self.peak:
                self.peak = new_peak
            self.results[self.average_name] = self.avg
            self.results[self.peak_name] = 10.0 * mlog10(self.peak + 1.0e-40)
            if self.gain_name is not None and gain is not None:
                self.results[self.gain_name] = 20.0 * mlog10(gain + 1.0e-40)

    def reading(self, name: str) -> float:
        """Return the current value of a named reading; KeyError if unknown."""
        with self._lock:
            return self.results[name]