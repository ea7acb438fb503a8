"""
Chat module for server-side messaging functionality.

Handles:
- Member registry and unique usernames
- Direct and broadcast message routing
- Join/leave notices and roster updates
- Per-connection lifecycle
"""
