"""
RecordHub Backend - API Configuration Helper
=============================================

What:  Endpoint URLs, default request options and three small helpers:
       auth headers from a stored token, a health probe, and a
       human-readable message for a failed request.
How:   No state beyond the token store passed in, no retries, no caching.
       HTTP goes through httpx.

Note:  API_BASE_URL points at port 5000 while the service listens on 8081
       by default. Callers pointing at a real server should build their own
       map with build_endpoints().
"""

import logging
from typing import Dict, Mapping, MutableMapping, Optional

import httpx

logger = logging.getLogger(__name__)

API_BASE_URL = "http://localhost:5000"


def build_endpoints(base_url: str) -> Dict[str, str]:
    """Logical endpoint name → absolute URL under base_url."""
    base = base_url.rstrip("/")
    return {
        "LOGIN": f"{base}/api/auth",
        "HEALTH": f"{base}/api/health",
        "STATS": f"{base}/api/stats",
        "UPLOAD": f"{base}/api/records",
        "EXPORT": f"{base}/api/records/export",
        "DUPLICATES": f"{base}/api/records/duplicates",
        "RECORDS": f"{base}/api/records",
        "DATASETS": f"{base}/api/datasets",
    }


API_ENDPOINTS = build_endpoints(API_BASE_URL)

API_CONFIG = {
    "headers": {
        "Content-Type": "application/json",
        "Accept": "application/json",
    },
    "mode": "cors",
    "credentials": "same-origin",
}

# Stand-in for the browser's localStorage; holds "token" after login
local_storage: MutableMapping[str, str] = {}


def get_auth_headers(storage: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """
    Default JSON headers plus Authorization.

    Authorization is "Bearer <token>" when a token is stored, otherwise an
    empty string.
    """
    store = local_storage if storage is None else storage
    token = store.get("token")
    return {
        **API_CONFIG["headers"],
        "Authorization": f"Bearer {token}" if token else "",
    }


async def check_server_health(
    client: Optional[httpx.AsyncClient] = None,
    url: str = API_ENDPOINTS["HEALTH"],
) -> bool:
    """
    True only when the health endpoint answers with status "ok".

    Any failure (connection refused, timeout, non-JSON body) gives False.
    """
    try:
        if client is None:
            async with httpx.AsyncClient() as own_client:
                response = await own_client.get(url, headers=API_CONFIG["headers"])
        else:
            response = await client.get(url, headers=API_CONFIG["headers"])
        data = response.json()
        return isinstance(data, dict) and data.get("status") == "ok"
    except Exception as error:
        logger.error("Server health check failed: %s", error)
        return False


def handle_api_error(error: BaseException) -> str:
    """
    Classify a failed request into a message for the user.

        server answered with an error → its "message" field, or a generic line
        request sent, no response     → connection hint
        anything else                 → the error's own text
    """
    if isinstance(error, httpx.HTTPStatusError):
        try:
            data = error.response.json()
        except ValueError:
            data = None
        message = data.get("message") if isinstance(data, dict) else None
        return message or "An error occurred"
    if isinstance(error, httpx.RequestError):
        return "No response from server. Please check your connection."
    return str(error) or "Network error occurred"
