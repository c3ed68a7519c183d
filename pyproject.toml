[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "radiodsp"
version = "0.1.0"
description = "Signal-processing blocks for software-defined radio: level meter, gain, test-signal generator, IIR notch and peaking filters, I/Q correction and I/O ring buffers."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["sdr", "dsp", "radio", "iir", "signal-generator", "iq-correction", "ring-buffer"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Communications :: Ham Radio",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
    "numpy",
]

[tool.hatch.build.targets.wheel]
packages = ["radiodsp"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
