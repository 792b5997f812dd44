"""
Application Layer - search orchestration.

Contains:
- search: relevance scoring, regional prioritization, normalization,
  synthetic fallback content, aggregation and the search facade
"""
