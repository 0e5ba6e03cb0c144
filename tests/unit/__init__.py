"""Unit tests for individual components in isolation.

Coverage:
    - transport/: STOMP codec, push and request transports
    - sync/: Store, error surface, send coordinator, connection lifecycle
    - config: Validation and defaults

Uses in-memory fakes for sockets and transports.
"""
