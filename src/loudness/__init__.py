from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("loudness-threshold")
except PackageNotFoundError:
    __version__ = "unknown"
