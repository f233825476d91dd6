"""HTTP and WebSocket client with Base64, URL encoding and string, memory, reader and writer helpers."""

__version__ = "0.1.0"