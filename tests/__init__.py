"""Test suite for the pytest-relay package.

This package contains unit and integration tests validating the test
case lifecycle, control-flow containers, background actions,
correlation managers and pytest integration.
"""
