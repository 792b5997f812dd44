"""Domain Layer - content model shared by every provider."""
