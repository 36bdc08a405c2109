"""Test suite for the FunPay client.

This package contains hermetic tests following the pytest framework.
Tests are structured to mirror the funpay/ package modules for discoverability.

Testing Philosophy:
    - Use pytest-mock and responses for network isolation
    - Focus coverage on cookie handling, AppData sync and HTML extraction
    - Avoid external dependencies - all I/O should be mocked
"""
