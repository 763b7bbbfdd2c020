"""Tests for core infrastructure (service result, exceptions, health check)."""
