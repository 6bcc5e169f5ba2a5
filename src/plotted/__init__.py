"""Strava route map.

Fetches an athlete's activities from Strava, caches each activity's encoded
route on disk, and draws every decoded route on one interactive map.
"""

__version__ = "0.1.0"

__author__ = "plotted contributors"
__license__ = "Apache-2.0"

__all__ = ["__version__"]
