"""Test suite for the session layer.

Test structure follows the test pyramid:
- unit/: Unit tests - domain logic, manager policy and stores with mocks
- integration/: Integration tests - Redis (fakeredis) and SQLite stores
"""
