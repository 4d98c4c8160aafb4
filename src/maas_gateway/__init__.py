"""URI-addressed resource gateway over the MAAS infrastructure API."""

__version__ = "0.1.0"
