"""
Infrastructure Layer - content sources.

Contains:
- entities: lookup over locally owned records
- http: shared HTTP client (retry, circuit breaker, typed errors)
- providers: internal, news and video content providers
"""
