"""Supervisor for a local Ethereum node: execution, consensus, validator and relay processes."""

__version__ = "0.1.0"
