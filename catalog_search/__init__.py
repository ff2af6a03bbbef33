"""Vector retrieval and seeding pipeline for product and manual search."""

__version__ = "0.1.0"
