"""Amplitude-dependent I/Q correction for transmit predistortion.

The correction is a piecewise cubic in the signal envelope. Three tables give,
for each envelope interval, the cubic coefficients of a magnitude factor
(``cm``) and of the cosine (``cc``) and sine (``cs``) parts of a phase
rotation. Two sets of tables are kept so that new values can be faded in
while the old ones are still in use.
"""

from __future__ import annotations

import enum
import math
import threading

import numpy as np


class IQCState(enum.IntEnum):
    """What the corrector is doing with each sample."""

    RUN = 0
    BEGIN = 1
    SWAP = 2
    END = 3
    DONE = 4


def _raised_cosine(n: int) -> list[float]:
    if n <= 0:
        return [0.0]
    delta = math.pi / n
    return [0.5 * (1.0 - math.cos(i * delta)) for i in range(n + 1)]


class IQCorrector:
    """Applies envelope-indexed magnitude and phase correction to complex samples.

    ``ints`` is the number of envelope intervals, ``tup`` the length in
    seconds of the fades used when starting, swapping and ending correction,
    and ``spi`` the number of samples each interval must see before the
    watchdog counts a full pass over all intervals.
    """

    def __init__(
        self,
        rate: float,
        ints: int,
        tup: float,
        spi: int,
        *,
        run: bool = False,
    ) -> None:
        if ints < 1:
            raise ValueError("ints must be at least 1")
        self.rate = float(rate)
        self.ints = ints
        self.tup = tup
        self.run = run
        self.busy = False
        self.t = [i / ints for i in range(ints + 1)]
        self.cset = 0
        self._cm = [np.zeros((ints, 4)), np.zeros((ints, 4))]
        self._cc = [np.zeros((ints, 4)), np.zeros((ints, 4))]
        self._cs = [np.zeros((ints, 4)), np.zeros((ints, 4))]
        self.count = 0
        self.state = IQCState.RUN
        self.ntup = int(self.tup * self.rate)
        self.cup = _raised_cosine(self.ntup)
        self.spi = spi
        self.dog_count = 0
        self._cpi = [0] * ints
        self._full_ints = 0
        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)

    # ------------------------------------------------------------ coefficients

    def _table(self, values) -> np.ndarray:
        arr = np.asarray(values, dtype=np.float64).reshape(-1)
        if arr.size != 4 * self.ints:
            raise ValueError(
                f"coefficient table must hold {4 * self.ints} values, got {arr.size}"
            )
        return arr.reshape(self.ints, 4).copy()

    def _load(self, cset: int, cm, cc, cs) -> None:
        tables = (self._table(cm), self._table(cc), self._table(cs))
        self._cm[cset], self._cc[cset], self._cs[cset] = tables

    def values(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return copies of the active ``cm``, ``cc`` and ``cs`` tables, flattened."""
        with self._lock:
            c = self.cset
            return (
                self._cm[c].reshape(-1).copy(),
                self._cc[c].reshape(-1).copy(),
                self._cs[c].reshape(-1).copy(),
            )

    def set_values(self, cm, cc, cs) -> None:
        """Replace the coefficients at once, without a fade."""
        with self._lock:
            other = 1 - self.cset
            self._load(other, cm, cc, cs)
            self.cset = other
            self.state = IQCState.RUN

    # ------------------------------------------------------------- transitions

    def _begin(self, state: IQCState) -> None:
        self.busy = True
        self.state = state
        self.count = 0

    def swap(self, cm, cc, cs, wait: bool = False) -> None:
        """Fade from the current coefficients to new ones."""
        with self._lock:
            other = 1 - self.cset
            self._load(other, cm, cc, cs)
            self.cset = other
            self._begin(IQCState.SWAP)
        if wait:
            self.wait_idle()

    def start(self, cm, cc, cs, wait: bool = False) -> None:
        """Load coefficients and fade correction in from an uncorrected signal."""
        with self._lock:
            self._load(0, cm, cc, cs)
            self.cset = 0
            self._begin(IQCState.BEGIN)
            self.run = True
        if wait:
            self.wait_idle()

    def end(self, wait: bool = False) -> None:
        """Fade correction out; the corrector stops running once the fade is done."""
        with self._lock:
            self._begin(IQCState.END)
        if wait:
            self.wait_idle()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no fade is in progress; False if the timeout ran out first."""
        with self._idle:
            return self._idle.wait_for(lambda: not self.busy, timeout)

    def flush(self) -> None:
        """The corrector keeps no signal history, so there is nothing to clear."""
        with self._lock:
            return None

    # --------------------------------------------------------------- execution

    def _finish_fade(self, next_state: IQCState) -> None:
        self.state = next_state
        self.count = 0
        self.busy = False
        if next_state == IQCState.DONE:
            self.run = False
        self._idle.notify_all()

    def _watchdog(self, k: int) -> None:
        if self._cpi[k] != self.spi:
            self._cpi[k] += 1
            if self._cpi[k] == self.spi:
                self._full_ints += 1
        if self._full_ints == self.ints:
            self.dog_count += 1
            self._full_ints = 0
            self._cpi = [0] * self.ints

    @staticmethod
    def _correction(cm, cc, cs, k: int, dx: float) -> complex:
        m, c, s = cm[k], cc[k], cs[k]
        ym = m[0] + dx * (m[1] + dx * (m[2] + dx * m[3]))
        yc = c[0] + dx * (c[1] + dx * (c[2] + dx * c[3]))
        ys = s[0] + dx * (s[1] + dx * (s[2] + dx * s[3]))
        return complex(ym * yc, ym * ys)

    def process(self, samples) -> np.ndarray:
        """Return the corrected buffer, or an unchanged copy when not running."""
        with self._lock:
            buff = np.array(samples, dtype=np.complex128).reshape(-1)
            if not self.run:
                return buff
            out = np.empty(buff.size, dtype=np.complex128)
            ints = self.ints
            for i, x in enumerate(buff.tolist()):
                env = abs(x)
                k = min(int(env * ints), ints - 1)
                dx = env - self.t[k]
                cset = self.cset
                pre = x * self._correction(
                    self._cm[cset].tolist(), self._cc[cset].tolist(),
                    self._cs[cset].tolist(), k, dx,
                )
                state = self.state
                if state == IQCState.RUN:
                    self._watchdog(k)
                elif state == IQCState.BEGIN:
                    w = self.cup[self.count]
                    pre = (1.0 - w) * x + w * pre
                    self.count += 1
                    if self.count - 1 == self.ntup:
                        self._finish_fade(IQCState.RUN)
                elif state == IQCState.SWAP:
                    mset = 1 - cset
                    old = x * self._correction(
                        self._cm[mset].tolist(), self._cc[mset].tolist(),
                        self._cs[mset].tolist(), k, dx,
                    )
                    w = self.cup[self.count]
                    pre = (1.0 - w) * old + w * pre
                    self.count += 1
                    if self.count - 1 == self.ntup:
                        self._finish_fade(IQCState.RUN)
                elif state == IQCState.END:
                    w = self.cup[self.count]
                    pre = (1.0 - w) * pre + w * x
                    self.count += 1
                    if self.count - 1 == self.ntup:
                        self._finish_fade(IQCState.DONE)
                else:
                    pre = x
                out[i] = pre
            return out