"""HTTP surface: routes, settings and service wiring."""
