"""Blocks — typed content units and the registry of their renderers."""
