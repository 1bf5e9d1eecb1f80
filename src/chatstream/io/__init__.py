"""JSONL helpers for captured provider streams and canonical events."""

from .jsonl import read_events, read_fragments, write_events

__all__ = ["read_events", "read_fragments", "write_events"]
