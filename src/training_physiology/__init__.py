"""Runner training physiology: load, VDOT and threshold-pace estimation."""

__version__ = "0.1.0"
