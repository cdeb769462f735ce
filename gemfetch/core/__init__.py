"""Spec model, index, closure and spec cache."""
