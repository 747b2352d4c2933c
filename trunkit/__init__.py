"""Layered configuration, build-stage hooks and dist-directory tooling for web bundling."""

__version__ = "0.1.0"