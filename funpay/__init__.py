"""FunPay client core package.

This package contains the components of the FunPay session client:
- session: thread-safe account state (cookies, CSRF token, identity)
- request: HTTP request pipeline with locale rewriting and status mapping
- appdata: synchronization of the page AppData into the session
- extractor: HTML extraction of listings, form fields and header badges
- client / lots: account and listing operations
- logger: structured JSON logging configuration
- exceptions: custom exception hierarchy
"""

__version__ = "1.0.0"
