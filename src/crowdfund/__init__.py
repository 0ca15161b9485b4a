"""Crowdfund campaign core: a phase-gated crowdfunding state machine."""

__version__ = "0.1.0"
