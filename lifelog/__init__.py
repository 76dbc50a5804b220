"""
Lifelog Engine

Event-sourced projection and consistency-scoring engine: every read model is
folded from an append-only event log on read.
"""

__version__ = "0.1.0"
