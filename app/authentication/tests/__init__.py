"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model and UserManager tests

Usage:
    pytest authentication/tests/
"""
