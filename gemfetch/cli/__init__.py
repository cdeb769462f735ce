"""Command line interface for gemfetch."""
