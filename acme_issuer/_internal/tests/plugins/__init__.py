"""Tests for challenge fulfillers."""
