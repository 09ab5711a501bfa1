"""workerflow - phase-based orchestration of autonomous workers."""

__version__ = "0.1.0"
