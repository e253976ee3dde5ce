# Routes package init
"""
RecordHub Backend - API Routes Package
=======================================

Route Inventory (prefix → module):
    /api/health       health.py      (readiness, always 200)
    /api/auth         auth.py
    /api/records      records.py
    /api/user         user.py
    /api/duplicates   duplicates.py
    /api/files        files.py

The app factory only relies on the prefix each group is mounted under.
`default_route_groups()` returns the stock handler sets; callers of
`create_app(routers=...)` may replace any of them.
"""

from typing import Dict

from fastapi import APIRouter

ROUTE_PREFIXES = {
    "auth": "/api/auth",
    "records": "/api/records",
    "user": "/api/user",
    "duplicates": "/api/duplicates",
    "files": "/api/files",
}


def default_route_groups() -> Dict[str, APIRouter]:
    """Map each mount prefix to the package's own router for it."""
    from recordhub.routes import auth, duplicates, files, records, user

    modules = {
        "auth": auth,
        "records": records,
        "user": user,
        "duplicates": duplicates,
        "files": files,
    }
    return {ROUTE_PREFIXES[name]: module.router for name, module in modules.items()}
