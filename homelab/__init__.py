"""
Homelab installer: provisions self-hosted services on a single host.
"""

__version__ = "1.0.0"
