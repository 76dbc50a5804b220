"""Tests for the lifelog engine."""
