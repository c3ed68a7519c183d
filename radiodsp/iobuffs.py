"""Input and output rings between a caller's sample stream and a DSP thread.

Samples handed in by the caller are collected in an input ring and released
to the DSP side in blocks of the DSP's size. Processed blocks go into an
output ring from which the caller's next exchange takes its output. Optional
slews fade the stream in when it starts and out when it stops.
"""

from __future__ import annotations

import enum
import math
import threading
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

UNDERFLOW_ERROR = -2


class SlewState(enum.IntEnum):
    """Position of the fade-in or fade-out state machine."""

    BEGIN = 0
    DELAYUP = 1
    UPSLEW = 2
    ON = 3
    DELAYDOWN = 4
    DOWNSLEW = 5
    ZERO = 6
    OFF = 7


def _rising(n: int) -> list[float]:
    if n <= 0:
        return [0.0]
    delta = math.pi / n
    return [0.5 * (1.0 - math.cos(i * delta)) for i in range(n + 1)]


def _falling(n: int) -> list[float]:
    if n <= 0:
        return [1.0]
    delta = math.pi / n
    return [0.5 * (1.0 + math.cos(i * delta)) for i in range(n + 1)]


class Slew:
    """Raised-cosine fade-in and fade-out of a sample stream.

    All lengths are in samples: ``ndelup`` and ``ntup`` are the delay and
    ramp before the stream reaches full level, ``ndeldown`` and ``ntdown``
    the delay and ramp before it falls to silence.
    """

    def __init__(self, ndelup: int = 0, ntup: int = 0, ndeldown: int = 0, ntdown: int = 0) -> None:
        if min(ndelup, ntup, ndeldown, ntdown) < 0:
            raise ValueError("slew lengths must not be negative")
        self.ndelup = ndelup
        self.ntup = ntup
        self.ndeldown = ndeldown
        self.ntdown = ntdown
        self.cup = _rising(ntup)
        self.cdown = _falling(ntdown)
        self.ustate = SlewState.BEGIN
        self.dstate = SlewState.BEGIN
        self.ucount = 0
        self.dcount = 0
        self.upflag = False
        self.downflag = False

    def flush(self) -> None:
        """Return both state machines to their start and clear the requests."""
        self.ustate = SlewState.BEGIN
        self.dstate = SlewState.BEGIN
        self.ucount = 0
        self.dcount = 0
        self.upflag = False
        self.downflag = False

    def up(self, samples) -> np.ndarray:
        """Fade a buffer in; the up request clears once the stream is at full level."""
        buff = np.array(samples, dtype=np.complex128).reshape(-1)
        out = np.zeros(buff.size, dtype=np.complex128)
        last = buff.size - 1
        for i, x in enumerate(buff.tolist()):
            state = self.ustate
            if state == SlewState.BEGIN:
                if x != 0:
                    if self.ndelup > 0:
                        self.ustate = SlewState.DELAYUP
                        self.ucount = self.ndelup
                    elif self.ntup > 0:
                        self.ustate = SlewState.UPSLEW
                        self.ucount = self.ntup
                    else:
                        self.ustate = SlewState.ON
            elif state == SlewState.DELAYUP:
                done = self.ucount == 0
                self.ucount -= 1
                if done:
                    if self.ntup > 0:
                        self.ustate = SlewState.UPSLEW
                        self.ucount = self.ntup
                    else:
                        self.ustate = SlewState.ON
            elif state == SlewState.UPSLEW:
                out[i] = x * self.cup[self.ntup - self.ucount]
                done = self.ucount == 0
                self.ucount -= 1
                if done:
                    self.ustate = SlewState.ON
            elif state == SlewState.ON:
                out[i] = x
                if i == last:
                    self.ustate = SlewState.BEGIN
                    self.upflag = False
        return out

    def down(self, samples) -> np.ndarray:
        """Fade a buffer out; the down request clears once a whole silent buffer is done."""
        buff = np.array(samples, dtype=np.complex128).reshape(-1)
        out = np.zeros(buff.size, dtype=np.complex128)
        size = buff.size
        last = size - 1
        for i, x in enumerate(buff.tolist()):
            state = self.dstate
            if state == SlewState.BEGIN:
                out[i] = x
                if self.ndeldown > 0:
                    self.dstate = SlewState.DELAYDOWN
                    self.dcount = self.ndeldown
                elif self.ntdown > 0:
                    self.dstate = SlewState.DOWNSLEW
                    self.dcount = self.ntdown
                else:
                    self.dstate = SlewState.ZERO
                    self.dcount = size
            elif state == SlewState.DELAYDOWN:
                out[i] = x
                done = self.dcount == 0
                self.dcount -= 1
                if done:
                    if self.ntdown > 0:
                        self.dstate = SlewState.DOWNSLEW
                        self.dcount = self.ntdown
                    else:
                        self.dstate = SlewState.ZERO
                        self.dcount = size
            elif state == SlewState.DOWNSLEW:
                out[i] = x * self.cdown[self.ntdown - self.dcount]
                done = self.dcount == 0
                self.dcount -= 1
                if done:
                    self.dstate = SlewState.ZERO
                    self.dcount = size
            elif state == SlewState.ZERO:
                done = self.dcount == 0
                self.dcount -= 1
                if done:
                    self.dstate = SlewState.OFF
            elif state == SlewState.OFF:
                if i == last:
                    self.dstate = SlewState.BEGIN
                    self.downflag = False
        return out


@dataclass
class ExchangeResult:
    """Output of one exchange call.

    ``underflow`` is set when no processed samples were available and the
    output is silence; ``stopped`` when a requested fade-out completed in
    this call; ``active`` is False when the buffers were not exchanging.
    """

    samples: np.ndarray
    underflow: bool = False
    stopped: bool = False
    active: bool = True

    @property
    def error(self) -> int:
        """Status code: -2 on underflow, otherwise 0."""
        return UNDERFLOW_ERROR if self.underflow else 0

    @property
    def i(self) -> np.ndarray:
        """In-phase part of the output."""
        return self.samples.real.copy()

    @property
    def q(self) -> np.ndarray:
        """Quadrature part of the output."""
        return self.samples.imag.copy()


class IOBuffers:
    """Pair of pseudo-rings connecting a caller's stream with a DSP loop."""

    def __init__(
        self,
        in_size: int,
        out_size: int,
        dsp_in_size: int,
        dsp_out_size: int,
        in_rate: float,
        out_rate: float,
        *,
        delay_up: float = 0.0,
        slew_up: float = 0.0,
        delay_down: float = 0.0,
        slew_down: float = 0.0,
        block_for_output: bool = False,
        ring_multiple: int = 2,
        on_stop: Callable[[], None] | None = None,
    ) -> None:
        if min(in_size, out_size, dsp_in_size, dsp_out_size) < 1:
            raise ValueError("buffer sizes must be positive")
        if ring_multiple < 1:
            raise ValueError("ring_multiple must be at least 1")
        self.in_size = in_size
        self.out_size = out_size
        self.r1_outsize = dsp_in_size
        self.r2_insize = dsp_out_size
        self.r1_size = max(dsp_in_size, in_size)
        self.r2_size = max(out_size, dsp_out_size)
        self.ring_multiple = ring_multiple
        self.r1_active_buffsize = ring_multiple * self.r1_size
        self.r2_active_buffsize = ring_multiple * self.r2_size
        for ring, sizes in (
            (self.r1_active_buffsize, (in_size, dsp_in_size)),
            (self.r2_active_buffsize, (out_size, dsp_out_size)),
        ):
            if any(ring % size for size in sizes):
                raise ValueError("ring size must be a whole multiple of each transfer size")
        self.block_for_output = block_for_output
        self.on_stop = on_stop
        self.exchanging = True
        self.running = True
        self.slew = Slew(
            int(delay_up * in_rate),
            int(slew_up * in_rate),
            int(delay_down * out_rate),
            int(slew_down * out_rate),
        )
        self._exchange_lock = threading.RLock()
        self._r2_lock = threading.Lock()
        self._buff_ready = threading.Semaphore(0)
        self.r1 = np.zeros(self.r1_active_buffsize, dtype=np.complex128)
        self.r2 = np.zeros(self.r2_active_buffsize, dtype=np.complex128)
        self._reset_rings()
        self._out_ready = threading.Semaphore(self._initial_out_count())

    def _reset_rings(self) -> None:
        self.r1[:] = 0
        self.r2[:] = 0
        self.r1_inidx = 0
        self.r1_outidx = 0
        self.r1_unqueuedsamps = 0
        self.r2_inidx = (self.ring_multiple - 1) * self.r2_size
        self.r2_outidx = 0
        self.r2_havesamps = (self.ring_multiple - 1) * self.r2_size

    def _initial_out_count(self) -> int:
        n = self.r2_havesamps // self.out_size
        self.r2_unqueuedsamps = self.r2_havesamps - n * self.out_size
        return n

    def request_upslew(self) -> None:
        """Fade the input in on the next exchanges."""
        self.slew.upflag = True

    def request_downslew(self) -> None:
        """Fade the output out; exchanging stops when the fade completes."""
        self.slew.downflag = True

    def wait_for_buffer(self, timeout: float | None = None) -> bool:
        """Wait for a DSP-sized block of input; False if the timeout ran out."""
        if timeout is None:
            return self._buff_ready.acquire()
        return self._buff_ready.acquire(timeout=timeout)

    def exchange(self, samples) -> ExchangeResult:
        """Put ``in_size`` complex samples in and take ``out_size`` samples out."""
        buff = np.array(samples, dtype=np.complex128).reshape(-1)
        if buff.size != self.in_size:
            raise ValueError(f"expected {self.in_size} samples, got {buff.size}")
        with self._exchange_lock:
            if not self.exchanging:
                return ExchangeResult(np.zeros(self.out_size, dtype=np.complex128), active=False)
            incoming = self.slew.up(buff) if self.slew.upflag else buff
            self.r1[self.r1_inidx : self.r1_inidx + self.in_size] = incoming
            self.r1_unqueuedsamps += self.in_size
            if self.r1_unqueuedsamps >= self.r1_outsize:
                n = self.r1_unqueuedsamps // self.r1_outsize
                self._buff_ready.release(n)
                self.r1_unqueuedsamps -= n * self.r1_outsize
            self.r1_inidx += self.in_size
            if self.r1_inidx == self.r1_active_buffsize:
                self.r1_inidx = 0

            with self._r2_lock:
                doit = self.r2_havesamps >= self.out_size
                self.r2_havesamps = max(self.r2_havesamps - self.out_size, 0)
            if self.block_for_output:
                self._out_ready.acquire()

            underflow = False
            stopped = False
            segment = self.r2[self.r2_outidx : self.r2_outidx + self.out_size]
            if self.block_for_output or doit:
                if self.slew.downflag:
                    out = self.slew.down(segment)
                    if not self.slew.downflag:
                        self.exchanging = False
                        stopped = True
                        if self.on_stop is not None:
                            threading.Thread(target=self.on_stop, daemon=True).start()
                else:
                    out = segment.copy()
            else:
                out = np.zeros(self.out_size, dtype=np.complex128)
                underflow = True
            self.r2_outidx += self.out_size
            if self.r2_outidx == self.r2_active_buffsize:
                self.r2_outidx = 0
            return ExchangeResult(out, underflow=underflow, stopped=stopped)

    def exchange_split(self, i_in, q_in) -> ExchangeResult:
        """Exchange with the input given as separate I and Q sequences."""
        i_arr = np.asarray(i_in, dtype=np.float64).reshape(-1)
        q_arr = np.asarray(q_in, dtype=np.float64).reshape(-1)
        if i_arr.size != q_arr.size:
            raise ValueError("I and Q inputs must have the same length")
        return self.exchange(i_arr + 1j * q_arr)

    def dsp_exchange(self, processed) -> np.ndarray:
        """Store a processed block and return the next block of input to process."""
        if not self.running:
            raise RuntimeError("the channel is not running")
        buff = np.array(processed, dtype=np.complex128).reshape(-1)
        if buff.size != self.r2_insize:
            raise ValueError(f"expected {self.r2_insize} samples, got {buff.size}")
        with self._r2_lock:
            self.r2_havesamps += self.r2_insize
        self.r2[self.r2_inidx : self.r2_inidx + self.r2_insize] = buff
        self.r2_inidx += self.r2_insize
        if self.r2_inidx == self.r2_active_buffsize:
            self.r2_inidx = 0
        if self.block_for_output:
            self.r2_unqueuedsamps += self.r2_insize
            if self.r2_unqueuedsamps >= self.out_size:
                n = self.r2_unqueuedsamps // self.out_size
                self._out_ready.release(n)
                self.r2_unqueuedsamps -= n * self.out_size
        block = self.r1[self.r1_outidx : self.r1_outidx + self.r1_outsize].copy()
        self.r1_outidx += self.r1_outsize
        if self.r1_outidx == self.r1_active_buffsize:
            self.r1_outidx = 0
        return block

    def flush(self) -> None:
        """Clear both rings, drop queued blocks and reset the slews."""
        with self._exchange_lock:
            self._reset_rings()
            while self._buff_ready.acquire(blocking=False):
                pass
            self._out_ready = threading.Semaphore(self._initial_out_count())
            self.slew.flush()