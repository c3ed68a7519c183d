"""Independent I and Q gain stage for complex sample buffers."""

from __future__ import annotations

import threading
from collections.abc import Callable

import numpy as np


class Gain:
    """Scales the in-phase and quadrature parts of a signal by separate gains."""

    def __init__(
        self,
        i_gain: float,
        q_gain: float,
        *,
        run: bool = True,
        enabled: Callable[[], bool] | None = None,
    ) -> None:
        self.i_gain = i_gain
        self.q_gain = q_gain
        self.run = run
        self.enabled = enabled
        self._lock = threading.RLock()

    def process(self, samples) -> np.ndarray:
        """Return the scaled buffer, or an unchanged copy when the stage is off."""
        with self._lock:
            buff = np.array(samples, dtype=np.complex128)
            external = True if self.enabled is None else bool(self.enabled())
            if self.run and external:
                return self.i_gain * buff.real + 1j * (self.q_gain * buff.imag)
            return buff

    def set_level(self, level: float) -> None:
        """Set both I and Q gains to the same level."""
        with self._lock:
            self.i_gain = level
            self.q_gain = level

    def flush(self) -> None:
        """The gain stage holds no signal state, so there is nothing to clear."""
        with self._lock:
            return None