"""
Test Suite Initialization

thinkrelay test suite.
"""
