"""nlquery - natural-language queries over PostgreSQL."""

__version__ = "0.1.0"
