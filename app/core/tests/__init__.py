"""Tests for core shared classes."""
