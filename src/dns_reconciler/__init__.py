"""Converge DNS records on Technitium or Cloudflare with a desired record set."""

__version__ = "1.0.0"
