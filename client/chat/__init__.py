"""
Chat module for client-side messaging functionality.

Handles:
- Joining under a unique username
- Sending direct and broadcast messages
- Delivering messages, roster updates and errors to callbacks
"""
