"""Utility modules for the homelab installer."""
