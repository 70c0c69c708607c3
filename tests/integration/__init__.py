"""
Integration tests for the Site Health Monitor.

These tests run real probes against a local aiohttp server and verify
that the components work together correctly.

Run with:
    pytest tests/integration/ -v -m integration

Skip with:
    pytest -m "not integration"
"""
