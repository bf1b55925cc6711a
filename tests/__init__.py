"""
Tests Package - Unit and Integration Tests

Test structure:
- tests/unit/ - Fast, isolated tests for each loader stage
- tests/integration/ - Whole-file runs through the dispatcher with fake stores
- tests/fakes.py - Fake Redis clients and sleep recorders
- tests/conftest.py - Shared pytest fixtures
"""
