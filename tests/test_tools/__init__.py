"""
Test Tools Package
Tests for the tools module (time utilities, recurrence, push transport)
"""
