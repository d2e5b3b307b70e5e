"""
Test Services Package
Tests for the scheduling services
"""
