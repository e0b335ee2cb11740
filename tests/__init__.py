"""
Huly SDK Test Suite.

This package contains:
- unit/: Unit tests (records, values, transactions, socket protocol)
- integration/: Client tests against the in-process fake platform
- fake_platform.py: aiohttp fake of the platform endpoints
"""
