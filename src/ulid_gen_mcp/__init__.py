from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ulid-gen-mcp")
except PackageNotFoundError:
    __version__ = "0.0.0"
