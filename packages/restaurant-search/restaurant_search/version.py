"""
Version information for restaurant-search package.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("restaurant-search")
except PackageNotFoundError:
    # Package is not installed
    __version__ = "0.0.0+unknown"
