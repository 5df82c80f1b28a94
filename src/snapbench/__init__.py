"""snapbench: snap-sync dataset verification, profiling and regression gating."""

__version__ = "0.1.0"
