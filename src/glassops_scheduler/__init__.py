"""Technician availability and appointment scheduling engine for GlassOps."""

__version__ = "0.1.0"
