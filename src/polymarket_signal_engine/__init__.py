"""Polymarket Signal Engine - adaptive whale-signal scoring with settlement feedback."""

__version__ = "0.1.0"
