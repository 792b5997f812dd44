#!/usr/bin/env python3
"""
Civic Search API Server - HTTP Mode

Runs the federated search API with uvicorn.

Usage:
    # Local only (default)
    python run_server.py --port 8765

    # Reachable from other machines, deterministic fallback content
    python run_server.py --host 0.0.0.0 --seed 7

Environment Variables:
    NEWS_API_KEY / ENABLE_NEWS_SEARCH: external news provider
    YOUTUBE_API_KEY / ENABLE_VIDEO_SEARCH: external video provider
    SEARCH_API_PORT: Server port (default: 8765)
    SEARCH_API_HOST: Server host (default: 127.0.0.1)
"""

import os
import sys

# Add src to path for development
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from civic_search.api.server import main

if __name__ == "__main__":
    main()
