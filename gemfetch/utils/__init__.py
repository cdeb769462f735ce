"""Utility helpers for gemfetch."""
