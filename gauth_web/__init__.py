"""GAuth Web - authentication and authorization API."""

__version__ = "1.0.0"
