"""Typed variables in a name-sorted registry, served over a TCP command shell."""

__version__ = "0.1.0"