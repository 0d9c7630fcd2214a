"""Declarative SSH provisioning engine."""

__version__ = "0.3.0"
