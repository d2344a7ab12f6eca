"""aabconv - convert Android App Bundles to installable APKs."""

__version__ = "0.1.0"
