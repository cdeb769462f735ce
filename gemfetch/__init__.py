"""gemfetch - fetch package specs and archives from gem registries."""

__version__ = "0.1.0"
