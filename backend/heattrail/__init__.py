"""HeatTrail location history and heatmap backend."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("heattrail")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
