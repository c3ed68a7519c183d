"""Test-signal generator: tone, two-tone, noise, sweep, sawtooth, triangle and pulse."""

from __future__ import annotations

import enum
import math
import random
import threading
from dataclasses import dataclass, field

import numpy as np

TWOPI = 2.0 * math.pi


class GenMode(enum.IntEnum):
    """Signal produced by a running generator; any other mode value gives silence."""

    TONE = 0
    TWO_TONE = 1
    NOISE = 2
    SWEEP = 3
    SAWTOOTH = 4
    TRIANGLE = 5
    PULSE = 6
    SILENCE = 7


class PulseState(enum.IntEnum):
    """Phase of the pulse envelope."""

    OFF = 0
    UP = 1
    ON = 2
    DOWN = 3


_NEXT_PULSE_STATE = {
    PulseState.OFF: PulseState.UP,
    PulseState.UP: PulseState.ON,
    PulseState.ON: PulseState.DOWN,
    PulseState.DOWN: PulseState.OFF,
}


@dataclass
class Tone:
    mag: float = 1.0
    freq: float = 1000.0
    phs: float = 0.0
    delta: float = 0.0
    cosdelta: float = 1.0
    sindelta: float = 0.0


@dataclass
class TwoTone:
    mag1: float = 0.5
    mag2: float = 0.5
    f1: float = 900.0
    f2: float = 1700.0
    phs1: float = 0.0
    phs2: float = 0.0
    delta1: float = 0.0
    delta2: float = 0.0
    cosdelta1: float = 1.0
    cosdelta2: float = 1.0
    sindelta1: float = 0.0
    sindelta2: float = 0.0


@dataclass
class Noise:
    mag: float = 1.0


@dataclass
class Sweep:
    mag: float = 1.0
    f1: float = -20000.0
    f2: float = 20000.0
    sweeprate: float = 4000.0
    phs: float = 0.0
    dphs: float = 0.0
    d2phs: float = 0.0
    dphsmax: float = 0.0


@dataclass
class Sawtooth:
    mag: float = 1.0
    f: float = 500.0
    period: float = 0.0
    delta: float = 0.0
    t: float = 0.0


@dataclass
class Triangle:
    mag: float = 1.0
    f: float = 500.0
    period: float = 0.0
    half: float = 0.0
    delta: float = 0.0
    t: float = 0.0
    t1: float = 0.0


@dataclass
class Pulse:
    mag: float = 1.0
    pf: float = 0.25
    pdutycycle: float = 0.25
    ptranstime: float = 0.002
    tf: float = 1000.0
    ctrans: list[float] = field(default_factory=list)
    pcount: int = 0
    pnon: int = 0
    pntrans: int = 0
    pnoff: int = 0
    pperiod: float = 0.0
    tphs: float = 0.0
    tdelta: float = 0.0
    tcosdelta: float = 1.0
    tsindelta: float = 0.0
    state: PulseState = PulseState.OFF


def _wrap(phase: float) -> float:
    if phase >= TWOPI:
        phase -= TWOPI
    if phase < 0.0:
        phase += TWOPI
    return phase


def _raised_cosine(n: int) -> list[float]:
    if n <= 0:
        return [0.0]
    delta = math.pi / n
    return [0.5 * (1.0 - math.cos(i * delta)) for i in range(n + 1)]


class Generator:
    """Produces test signals as buffers of complex samples."""

    def __init__(
        self,
        rate: float,
        mode: int = GenMode.TONE,
        *,
        run: bool = True,
        seed: int | None = None,
    ) -> None:
        self.rate = float(rate)
        self.mode = mode
        self.run = run
        self.tone = Tone()
        self.two_tone = TwoTone()
        self.noise = Noise()
        self.sweep = Sweep()
        self.saw = Sawtooth()
        self.tri = Triangle()
        self.pulse = Pulse()
        self._random = random.Random(seed)
        self._lock = threading.RLock()
        self._calc_tone()
        self._calc_two_tone()
        self._calc_sweep()
        self._calc_sawtooth()
        self._calc_triangle()
        self._calc_pulse()

    # ------------------------------------------------------------------ setup

    def _calc_tone(self) -> None:
        t = self.tone
        t.phs = 0.0
        t.delta = TWOPI * t.freq / self.rate
        t.cosdelta = math.cos(t.delta)
        t.sindelta = math.sin(t.delta)

    def _calc_two_tone(self) -> None:
        t = self.two_tone
        t.phs1 = 0.0
        t.phs2 = 0.0
        t.delta1 = TWOPI * t.f1 / self.rate
        t.delta2 = TWOPI * t.f2 / self.rate
        t.cosdelta1 = math.cos(t.delta1)
        t.cosdelta2 = math.cos(t.delta2)
        t.sindelta1 = math.sin(t.delta1)
        t.sindelta2 = math.sin(t.delta2)

    def _calc_sweep(self) -> None:
        s = self.sweep
        s.phs = 0.0
        s.dphs = TWOPI * s.f1 / self.rate
        s.d2phs = TWOPI * s.sweeprate / (self.rate * self.rate)
        s.dphsmax = TWOPI * s.f2 / self.rate

    def _calc_sawtooth(self) -> None:
        s = self.saw
        s.period = 1.0 / s.f
        s.delta = 1.0 / self.rate
        s.t = 0.0

    def _calc_triangle(self) -> None:
        t = self.tri
        t.period = 1.0 / t.f
        t.half = 0.5 * t.period
        t.delta = 1.0 / self.rate
        t.t = 0.0
        t.t1 = 0.0

    def _calc_pulse(self) -> None:
        p = self.pulse
        p.pperiod = 1.0 / p.pf
        p.tphs = 0.0
        p.tdelta = TWOPI * p.tf / self.rate
        p.tcosdelta = math.cos(p.tdelta)
        p.tsindelta = math.sin(p.tdelta)
        p.pntrans = int(p.ptranstime * self.rate)
        p.pnon = int(p.pdutycycle * p.pperiod * self.rate)
        p.pnoff = max(int(p.pperiod * self.rate) - p.pnon - 2 * p.pntrans, 0)
        p.pcount = p.pnoff
        p.state = PulseState.OFF
        p.ctrans = _raised_cosine(p.pntrans)

    # ------------------------------------------------------------- properties

    def set_tone_freq(self, freq: float) -> None:
        """Set the single-tone frequency and restart its phase."""
        with self._lock:
            self.tone.freq = freq
            self._calc_tone()

    def set_two_tone_freq(self, freq1: float, freq2: float) -> None:
        """Set both two-tone frequencies and restart their phases."""
        with self._lock:
            self.two_tone.f1 = freq1
            self.two_tone.f2 = freq2
            self._calc_two_tone()

    def set_sweep_freq(self, freq1: float, freq2: float) -> None:
        """Set the start and end frequencies of the sweep."""
        with self._lock:
            self.sweep.f1 = freq1
            self.sweep.f2 = freq2
            self._calc_sweep()

    def set_sweep_rate(self, rate: float) -> None:
        """Set the sweep rate in Hz per second."""
        with self._lock:
            self.sweep.sweeprate = rate
            self._calc_sweep()

    def set_sawtooth_freq(self, freq: float) -> None:
        """Set the sawtooth frequency."""
        with self._lock:
            self.saw.f = freq
            self._calc_sawtooth()

    def set_triangle_freq(self, freq: float) -> None:
        """Set the triangle frequency."""
        with self._lock:
            self.tri.f = freq
            self._calc_triangle()

    def set_pulse(
        self,
        freq: float | None = None,
        duty_cycle: float | None = None,
        tone_freq: float | None = None,
        transition: float | None = None,
    ) -> None:
        """Change any of the pulse parameters; those left as None keep their value."""
        with self._lock:
            p = self.pulse
            if freq is not None:
                p.pf = freq
            if duty_cycle is not None:
                p.pdutycycle = duty_cycle
            if tone_freq is not None:
                p.tf = tone_freq
            if transition is not None:
                p.ptranstime = transition
            self._calc_pulse()

    def flush(self) -> None:
        """Return the pulse envelope to its off state."""
        with self._lock:
            self.pulse.state = PulseState.OFF

    # -------------------------------------------------------------- execution

    def process(self, samples) -> np.ndarray:
        """Return a generated buffer as long as ``samples``, or a copy of it when off."""
        with self._lock:
            buff = np.array(samples, dtype=np.complex128).reshape(-1)
            if not self.run:
                return buff
            n = buff.size
            try:
                mode = GenMode(self.mode)
            except ValueError:
                mode = GenMode.SILENCE
            producers = {
                GenMode.TONE: self._tone,
                GenMode.TWO_TONE: self._two_tone,
                GenMode.NOISE: self._noise,
                GenMode.SWEEP: self._sweep,
                GenMode.SAWTOOTH: self._sawtooth,
                GenMode.TRIANGLE: self._triangle,
                GenMode.PULSE: self._pulse,
            }
            producer = producers.get(mode)
            if producer is None:
                return np.zeros(n, dtype=np.complex128)
            return producer(n)

    def _tone(self, n: int) -> np.ndarray:
        t = self.tone
        out = np.empty(n, dtype=np.complex128)
        c, s = math.cos(t.phs), math.sin(t.phs)
        for i in range(n):
            out[i] = complex(t.mag * c, -t.mag * s)
            c, s = c * t.cosdelta - s * t.sindelta, c * t.sindelta + s * t.cosdelta
            t.phs = _wrap(t.phs + t.delta)
        return out

    def _two_tone(self, n: int) -> np.ndarray:
        t = self.two_tone
        out = np.empty(n, dtype=np.complex128)
        c1, s1 = math.cos(t.phs1), math.sin(t.phs1)
        c2, s2 = math.cos(t.phs2), math.sin(t.phs2)
        for i in range(n):
            out[i] = complex(t.mag1 * c1 + t.mag2 * c2, -t.mag1 * s1 - t.mag2 * s2)
            c1, s1 = c1 * t.cosdelta1 - s1 * t.sindelta1, c1 * t.sindelta1 + s1 * t.cosdelta1
            t.phs1 = _wrap(t.phs1 + t.delta1)
            c2, s2 = c2 * t.cosdelta2 - s2 * t.sindelta2, c2 * t.sindelta2 + s2 * t.cosdelta2
            t.phs2 = _wrap(t.phs2 + t.delta2)
        return out

    def _noise(self, n: int) -> np.ndarray:
        out = np.empty(n, dtype=np.complex128)
        uniform = self._random.random
        mag = self.noise.mag
        for i in range(n):
            while True:
                r1 = 2.0 * uniform() - 1.0
                r2 = 2.0 * uniform() - 1.0
                c = r1 * r1 + r2 * r2
                if 0.0 < c < 1.0:
                    break
            rad = math.sqrt(-2.0 * math.log(c) / c)
            out[i] = complex(mag * rad * r1, mag * rad * r2)
        return out

    def _sweep(self, n: int) -> np.ndarray:
        s = self.sweep
        out = np.empty(n, dtype=np.complex128)
        for i in range(n):
            out[i] = complex(s.mag * math.cos(s.phs), -s.mag * math.sin(s.phs))
            s.phs += s.dphs
            s.dphs += s.d2phs
            s.phs = _wrap(s.phs)
            if s.dphs > s.dphsmax:
                s.dphs = TWOPI * s.f1 / self.rate
        return out

    def _sawtooth(self, n: int) -> np.ndarray:
        s = self.saw
        out = np.zeros(n, dtype=np.complex128)
        for i in range(n):
            if s.t > s.period:
                s.t -= s.period
            out[i] = s.mag * (s.t * s.f - 1.0)
            s.t += s.delta
        return out

    def _triangle(self, n: int) -> np.ndarray:
        t = self.tri
        out = np.zeros(n, dtype=np.complex128)
        for i in range(n):
            if t.t > t.period:
                t.t -= t.period
                t.t1 = t.t
            if t.t > t.half:
                t.t1 -= t.delta
            else:
                t.t1 += t.delta
            out[i] = t.mag * (4.0 * t.t1 * t.f - 1.0)
            t.t += t.delta
        return out

    def _pulse_count(self, state: PulseState) -> int:
        p = self.pulse
        return {
            PulseState.OFF: p.pnoff,
            PulseState.UP: p.pntrans,
            PulseState.ON: p.pnon,
            PulseState.DOWN: p.pntrans,
        }[state]

    def _advance_pulse(self) -> None:
        p = self.pulse
        p.pcount -= 1
        if p.pcount != 0:
            return
        state = _NEXT_PULSE_STATE[p.state]
        # States of zero length are passed over so the envelope cannot stall.
        while self._pulse_count(state) == 0:
            state = _NEXT_PULSE_STATE[state]
        p.state = state
        p.pcount = self._pulse_count(state)

    def _pulse(self, n: int) -> np.ndarray:
        p = self.pulse
        out = np.zeros(n, dtype=np.complex128)
        c, s = math.cos(p.tphs), math.sin(p.tphs)
        for i in range(n):
            if p.pnoff != 0:
                if p.state == PulseState.OFF:
                    value = 0.0
                elif p.state == PulseState.UP:
                    value = p.mag * c * p.ctrans[p.pntrans - p.pcount]
                elif p.state == PulseState.ON:
                    value = p.mag * c
                else:
                    value = p.mag * c * p.ctrans[p.pcount]
                out[i] = value
                self._advance_pulse()
            c, s = c * p.tcosdelta - s * p.tsindelta, c * p.tsindelta + s * p.tcosdelta
            p.tphs = _wrap(p.tphs + p.tdelta)
        return out