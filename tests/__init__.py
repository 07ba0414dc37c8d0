"""
Test package.

Fixtures live in conftest.py; prefer per-test monkeypatch over global patching.
"""
