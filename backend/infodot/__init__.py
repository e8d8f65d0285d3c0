"""
InfoDot data-access core: cached reads, invalidation hooks and broadcast.
"""

from .constants import APP_VERSION as __version__
