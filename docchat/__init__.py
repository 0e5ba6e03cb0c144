"""Document Chat - live conversation client for uploaded documents.

Keeps a local, ordered view of a document chat session in sync with the
backend over STOMP/WebSocket push or plain HTTP request/response.

Components:
    - transport: Push (STOMP over WebSocket) and request/response adapters
    - sync: Connection lifecycle, history, message store, send coordination
    - models: Session, message and wire schemas
    - ui: NiceGUI view over the session state
"""

__version__ = "0.1.0"
