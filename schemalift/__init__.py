"""schemalift — versioned schema and data upgrades for a core system and its extensions."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("schemalift")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development
