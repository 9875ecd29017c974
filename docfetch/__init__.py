"""Resolve import paths to source directories via meta tags and git or Subversion checkouts, with HTTP helpers for serving them."""

__version__ = "0.1.0"