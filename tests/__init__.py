"""Test package for verify_services.

Shared builders and collaborator fakes live in ``tests.fixtures``; pytest
fixtures wiring them together live in ``conftest.py``.
"""
