"""NiceGUI interface - thin visualization layer over a chat session.

Responsibilities:
    - Conversation display from session snapshots
    - Connection indicator and typing indicator
    - Dismissible error banner
    - Input gated on connection and pending turn

Contains no synchronization logic. Delegates all operations to ChatSession.
"""
