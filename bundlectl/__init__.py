"""bundlectl: install application bundles and track their installations."""

__version__ = "0.1.0"
