"""Register CI builds, their changelogs and published artifacts in a build catalog."""

import importlib.metadata

# Running from a source checkout without an installed distribution reports 0.0.0.
try:
    __version__ = importlib.metadata.version("build-library")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
