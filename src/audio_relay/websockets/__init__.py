"""
WebSocket transport for the Audio Relay system.

- core: connection wrapper, listener registry and source slot
- server: the relay server and its message handlers
- client: a relay client for sources and listeners
"""
