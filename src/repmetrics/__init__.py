from importlib.metadata import version

from . import get, io, pp, tl, util

__all__ = ["get", "io", "pp", "tl", "util"]

__version__ = version("repmetrics")
