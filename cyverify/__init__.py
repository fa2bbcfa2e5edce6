"""Verify that a downloaded Cypress binary is installed and can run."""

__version__ = "1.2.3"

__all__ = ["__version__"]
