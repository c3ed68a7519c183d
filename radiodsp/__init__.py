"""Signal-processing blocks for a software-defined radio: meter, gain, generator, IIR filters, I/Q correction and I/O rings."""

__version__ = "0.1.0"
__all__ = ["gain", "gen", "iir", "iobuffs", "iqc", "meter"]