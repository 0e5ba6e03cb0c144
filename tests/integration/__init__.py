"""Integration tests for ChatSession working as a system.

Coverage:
    - History loading against the stand-in backend
    - Request/response turns over real HTTP handling (ASGI)
    - Push-mode turns, reconnects and teardown

No network access required.
"""
