"""
RecordHub Backend - Application Package
========================================

What: HTTP service backing the RecordHub frontend (auth, records,
      duplicate lookup, file uploads) on top of MongoDB.

Layers:

    ┌─────────────────────────────────────┐
    │   server.py (process lifecycle)     │  ← config → connect → listen → drain
    ├─────────────────────────────────────┤
    │   main.py (app factory, middleware) │  ← CORS, logging, error boundary
    ├─────────────────────────────────────┤
    │   routes/ (HTTP handlers)           │  ← mounted under fixed prefixes
    ├─────────────────────────────────────┤
    │   services/ (business logic)        │
    ├─────────────────────────────────────┤
    │   database.py (MongoDB connector)   │  ← one long-lived motor client
    └─────────────────────────────────────┘

The frontend's API helper lives in `recordhub.client`.
"""

__version__ = "1.0.0"
