"""Clinic appointment booking: slot availability and race-safe booking."""

__version__ = "0.1.0"
