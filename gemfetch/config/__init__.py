"""Configuration loading for gemfetch."""
