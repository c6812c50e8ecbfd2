"""
Authenticated resolution and caching of protected asset references.

The rendering layer hands references to SecureAssetResolver.resolve() and
gets back something it can render: a local handle URI for protected assets,
the reference itself for everything else, or a fallback when resolution
fails.
"""

from secure_assets.config import ResolverConfig, load_config
from secure_assets.handles import HandleStore, LocalHandle
from secure_assets.resolver import ResolutionFailure, SecureAssetResolver

__version__ = "0.1.0"

__all__ = [
    "SecureAssetResolver",
    "ResolutionFailure",
    "ResolverConfig",
    "load_config",
    "HandleStore",
    "LocalHandle",
]
