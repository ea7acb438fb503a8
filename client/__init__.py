"""
Client package for the LAN chat broker.

This package contains all client-side functionality including:
- Chat messaging (join, direct and broadcast text)
- Qt signal bridge for a GUI front end
- Configuration and utilities
"""
