"""Wine Manager - lifecycle management for Wine/Proton tool versions.

This package keeps a local catalog of compatibility-layer releases, merges it
with upstream release feeds, and installs or removes individual versions.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
