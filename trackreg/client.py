# trackreg/client.py
"""
Client SDK for the registry server.

Usage:
    client = RegistryClient("http://localhost:8080")

    result = client.call("mint", caller="artist",
                         content_ref="ipfs://track", title="Title", description="")
    asset_id = client.call_or_raise("get-last-id", caller="artist")
"""

import json
from typing import Any, Dict, List
from urllib.request import urlopen, Request
from urllib.error import HTTPError, URLError

from .engine import Call, CallResult
from .errors import error_for_code
from .journal import JournalEntry


class RegistryClient:
    """
    Client for the registry server.

    Args:
        base_url: Server URL (e.g., "http://localhost:8080")
        timeout: Request timeout in seconds
    """

    def __init__(self, base_url: str = "http://localhost:8080", timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, data: dict = None) -> dict:
        """Make HTTP request to server."""
        url = f"{self.base_url}{path}"

        if data is not None:
            body = json.dumps(data).encode()
            headers = {"Content-Type": "application/json"}
        else:
            body = None
            headers = {}

        req = Request(url, data=body, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.timeout) as response:
                return json.loads(response.read().decode())
        except HTTPError as e:
            error_body = e.read().decode()
            try:
                error_data = json.loads(error_body)
            except json.JSONDecodeError:
                raise RuntimeError(f"HTTP {e.code}: {error_body}")
            raise RuntimeError(error_data.get("error", str(e)))
        except URLError as e:
            raise ConnectionError(f"Failed to connect to server: {e}")

    def health(self) -> bool:
        """Check if server is healthy."""
        try:
            result = self._request("GET", "/health")
            return result.get("status") == "ok"
        except (RuntimeError, ConnectionError):
            return False

    def execute(self, call: Call) -> CallResult:
        """Send a call and return its tagged result."""
        return CallResult.from_dict(self._request("POST", "/call", call.to_dict()))

    def call(self, operation: str, caller: str, **args) -> CallResult:
        return self.execute(Call(operation=operation, caller=caller, args=args))

    def call_or_raise(self, operation: str, caller: str, **args) -> Any:
        """
        Send a call and return its value.

        Raises:
            RegistryError: The matching subclass for the failure reason
        """
        result = self.call(operation, caller, **args)
        if not result.ok:
            raise error_for_code(result.error_code, result.error or "")
        return result.value

    def state(self) -> Dict[str, Any]:
        """Get pause flag, admin, last id and sequence height."""
        return self._request("GET", "/state")

    def journal(self) -> List[JournalEntry]:
        data = self._request("GET", "/journal")
        return [JournalEntry.from_dict(e) for e in data.get("entries", [])]


__all__ = ["RegistryClient"]
