"""Packaged variable register maps."""
