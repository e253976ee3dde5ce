"""
RecordHub Backend - API Client Helpers
=======================================

What:  The endpoint map and request helpers the frontend uses to talk to
       this service, for scripts and tools that call the API from Python.
"""

from recordhub.client.api_config import (
    API_BASE_URL,
    API_CONFIG,
    API_ENDPOINTS,
    build_endpoints,
    check_server_health,
    get_auth_headers,
    handle_api_error,
    local_storage,
)

__all__ = [
    "API_BASE_URL",
    "API_CONFIG",
    "API_ENDPOINTS",
    "build_endpoints",
    "check_server_health",
    "get_auth_headers",
    "handle_api_error",
    "local_storage",
]
