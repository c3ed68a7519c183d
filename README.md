# radiodsp

Building blocks for a software-defined radio signal chain. Each block works
on complex baseband samples (anything NumPy can turn into a `complex128`
array), keeps its own state between calls and returns a new array.

## Modules

- `radiodsp.meter`
  - `Meter(rate, tau_average, tau_peak_decay, *, average="average", peak="peak", gain_name=None, run=True, enabled=None, results=None)`
    keeps a smoothed average power and a decaying peak power, in dB.
    `process(samples, gain=None)` updates the readings; `reading(name)`
    returns one of them (`KeyError` for an unknown name). When `run` is
    false, or the `enabled` callable returns false, the readings are set to
    -400 dB (and the gain reading to 0). `flush()` resets everything to -400 dB.
  - `mlog10(val)`: fast table-driven base-10 logarithm taken from the bit
    pattern of a double.
- `radiodsp.gain`
  - `Gain(i_gain, q_gain, *, run=True, enabled=None)` scales the real and
    imaginary parts separately; `set_level(level)` sets both gains. When off
    it returns an unchanged copy.
- `radiodsp.gen`
  - `Generator(rate, mode=GenMode.TONE, *, run=True, seed=None)` produces a
    buffer as long as the one passed to `process(samples)`. Modes in
    `GenMode`: `TONE`, `TWO_TONE`, `NOISE` (Gaussian, reproducible with
    `seed`), `SWEEP`, `SAWTOOTH`, `TRIANGLE`, `PULSE`; any other mode value
    gives silence. Setters: `set_tone_freq`, `set_two_tone_freq`,
    `set_sweep_freq`, `set_sweep_rate`, `set_sawtooth_freq`,
    `set_triangle_freq` and `set_pulse(freq, duty_cycle, tone_freq, transition)`,
    where any pulse argument left as `None` keeps its value. Magnitudes are
    attributes of `tone`, `two_tone`, `noise`, `sweep`, `saw`, `tri` and
    `pulse`.
- `radiodsp.iir`
  - `SNotch(rate, freq, bandwidth, *, run=True)`: bi-quad notch on the
    in-phase part only (the quadrature part passes through); for example to
    remove a CTCSS tone. `set_freq(freq)` moves it.
  - `SPeak(rate, freq, bandwidth, gain, nstages, design=0, *, run=True)`:
    cascade of bi-quad peaking stages applied to I and Q. Design 0 is a
    resonator, design 1 a constant-skirt peak (centre held at 200 Hz or
    above). `configure(freq, bandwidth, gain)` changes any of them.
  - `MPeak(rate, enabled, freqs, bandwidths, gains, nstages, *, run=True)`:
    a bank of design-1 `SPeak` filters whose outputs are summed, with
    `set_filter_enabled`, `set_filter_freq`, `set_filter_bandwidth` and
    `set_filter_gain` taking the filter index (`IndexError` if out of range).
- `radiodsp.iqc`
  - `IQCorrector(rate, ints, tup, spi, *, run=False)`: envelope-indexed
    piecewise-cubic magnitude and phase correction. `start(cm, cc, cs)`
    fades correction in, `swap(cm, cc, cs)` fades to new tables,
    `end()` fades out and then stops; each takes `wait=True` to block until
    the fade is done, or use `wait_idle(timeout)`. `set_values` replaces the
    tables at once and `values()` returns the active ones. The current
    transition is `state` (an `IQCState`), and `dog_count` counts full passes
    of the watchdog over all envelope intervals.
- `radiodsp.iobuffs`
  - `IOBuffers(in_size, out_size, dsp_in_size, dsp_out_size, in_rate, out_rate, ...)`:
    the input and output rings between a caller's fixed-size exchanges and a
    DSP loop working in its own block size. `exchange(samples)` and
    `exchange_split(i_in, q_in)` return an `ExchangeResult` (`samples`, `i`,
    `q`, `underflow`, `stopped`, `active`, `error`). The DSP side calls
    `wait_for_buffer(timeout)` and then `dsp_exchange(processed)`, which
    stores a processed block and returns the next input block.
    `request_upslew()` and `request_downslew()` fade the stream in and out;
    when a fade-out completes, exchanging stops and the optional `on_stop`
    callback runs on a new thread. `flush()` clears the rings.
  - `Slew(ndelup, ntup, ndeldown, ntdown)`: the raised-cosine fade state
    machines, with `up(samples)` and `down(samples)`.

## Installing

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import numpy as np
from radiodsp.gen import Generator, GenMode
from radiodsp.iir import SNotch
from radiodsp.meter import Meter

gen = Generator(48000, GenMode.TONE)
gen.set_tone_freq(1000.0)
block = gen.process(np.zeros(256, dtype=np.complex128))

notch = SNotch(48000, 1000.0, 0.0002)
cleaned = notch.process(block)

meter = Meter(48000, 0.1, 0.1)
meter.process(cleaned)
print(meter.reading("average"), meter.reading("peak"))
```

Feeding the rings by hand:

```python
import numpy as np
from radiodsp.iobuffs import IOBuffers

io = IOBuffers(256, 256, 256, 256, 48000, 48000)
result = io.exchange(np.ones(256, dtype=np.complex128))
if io.wait_for_buffer(timeout=0):
    to_process = io.dsp_exchange(np.zeros(256, dtype=np.complex128))
print(result.underflow, result.error)
```

## What it does not do

The package provides the individual blocks only. It does not assemble them
into receive or transmit chains, manage numbered channels, or start a DSP
thread: a program using `IOBuffers` runs its own loop around
`wait_for_buffer` and `dsp_exchange`. There is no command-line tool and no
audio or hardware input/output.