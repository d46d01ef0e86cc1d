"""Command line interface for Shopassets."""
