"""Test helper utilities for Pet Alert Notifier tests."""

from .fakes import BlockingSelector, RecordingSender, StaticSelector, UnavailableSelector

__all__ = ["BlockingSelector", "RecordingSender", "StaticSelector", "UnavailableSelector"]
