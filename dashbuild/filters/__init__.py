"""Filters — input bindings and conditional visibility for pages."""
