"""Test package for Document Chat.

Structure:
    - unit/: Individual components (codec, store, coordinator, lifecycle)
    - integration/: ChatSession end to end against a stand-in backend

The stand-in backend is a FastAPI app reached through httpx's ASGI
transport; push mode uses an in-memory transport.
Leverages pytest with pytest-check for soft assertions.
"""
