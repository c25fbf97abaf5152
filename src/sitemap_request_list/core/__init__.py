"""
Core package initialization
"""

from sitemap_request_list.core.config import Environment, ListSettings, settings

__all__ = ["Environment", "ListSettings", "settings"]
