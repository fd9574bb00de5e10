"""
HTTP client for the dashboard data service.

All reads are independent and side-effect free. Any non-2xx response or
transport error surfaces as FetchFailure; nothing is retried or cached here.
"""
from typing import Any, Dict, List, Optional

import requests

from core.config import get_api_base_url, get_api_timeout
from core.exceptions import FetchFailure


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:200]
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return ""


class DashboardApiClient:
    """Thin JSON client over a shared requests.Session"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        self.base_url = (base_url or get_api_base_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_api_timeout()
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Issue a request and decode its JSON body.

        Raises:
            FetchFailure: unreachable service, non-2xx status or non-JSON body
        """
        url = f"{self.base_url}{path}"

        try:
            response = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            print(f"[API] ✗ {method} {path}: {e}")
            raise FetchFailure(path, detail=str(e)) from e

        print(f"[API] {method} {path} -> {response.status_code}")

        if not response.ok:
            raise FetchFailure(path, status_code=response.status_code, detail=_error_detail(response))

        try:
            return response.json()
        except ValueError as e:
            raise FetchFailure(path, status_code=response.status_code, detail="response is not JSON") from e

    def get(self, path: str) -> Any:
        return self.request("GET", path)

    def post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, body)

    def get_list_or_empty(self, path: str) -> List[Any]:
        """
        GET for evidence collections where absence means "no evidence yet".

        A non-2xx status yields []; an unreachable service still raises.
        """
        try:
            data = self.get(path)
        except FetchFailure as e:
            if e.status_code is None:
                raise
            print(f"[API] {path} unavailable ({e.status_code}), treating as no evidence yet")
            return []
        return data if isinstance(data, list) else []

    def close(self) -> None:
        self.session.close()


# Singleton instance
_api_client: Optional[DashboardApiClient] = None


def get_api_client() -> DashboardApiClient:
    """Get or create the shared API client"""
    global _api_client

    if _api_client is None:
        _api_client = DashboardApiClient()

    return _api_client


def close_api_client() -> None:
    """Close the shared client's connections"""
    global _api_client
    if _api_client is not None:
        _api_client.close()
        _api_client = None
