"""Gossip-style membership protocol with failure detection on an emulated network."""

__version__ = "0.1.0"