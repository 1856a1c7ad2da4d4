"""Multi-reactor TCP networking: one event loop per thread, round-robin connection dispatch."""

__version__ = "0.1.0"