"""
Test Jobs Package
Tests for the delivery sweep and job scheduler
"""
