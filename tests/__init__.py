"""
fsdms Test Suite.

This package contains:
- unit/: Unit tests (pure functions, codec, configuration)
- integration/: Integration tests (real filesystem in temporary directories)
"""
