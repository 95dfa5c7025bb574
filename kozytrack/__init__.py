"""KozyTrack Discord bot"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("kozytrack")
except PackageNotFoundError:
    __version__ = "dev"
