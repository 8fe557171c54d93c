"""Utility modules for Recipe Box."""
