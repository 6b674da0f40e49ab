"""firmdesk: bulk import and billing tools for an accounting practice."""

__version__ = "0.4.0"
