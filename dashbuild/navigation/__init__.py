"""Navigation — navbar menus and sidebars built from pages."""
