"""
Server package for the LAN chat broker.

This package contains all server-side functionality including:
- Listening socket and connection lifecycle
- Member registry and message routing
- Configuration and utilities
"""
