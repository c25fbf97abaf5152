"""
Workers package initialization
"""

from sitemap_request_list.workers.populator import FrontierPopulator, SourceFailure

__all__ = ["FrontierPopulator", "SourceFailure"]
