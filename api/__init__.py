"""
Module 09 - Minimal API (FastAPI)

HTTP API for the allowlist accumulator:
- GET /root - Current Merkle root
- GET /proof/{address} - Inclusion proof
- GET /members/{address} - Membership check
- POST /addresses - Append addresses (owner)
- GET /stats - Tree statistics (owner)
- GET /health - Health check

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
