"""HTTP client infrastructure for external content APIs."""

from .base_client import BaseAPIClient

__all__ = ["BaseAPIClient"]
