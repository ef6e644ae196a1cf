"""Test suite for sigscore.

Test organization:
- unit/: Unit tests for individual modules
- fixtures/: Mock data generators and test utilities
"""
