"""
Google Sheets API v4 operations over plain HTTP.

Every call asks the token provider for an access token, so an expired token
is refreshed transparently before the request goes out.
"""

from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests
from loguru import logger

from .exceptions import SheetsAPIError

API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
REQUEST_TIMEOUT = 30

# Returns a currently valid access token
TokenProvider = Callable[[], str]


class SheetsClient:
    """Thin wrapper around the spreadsheets and values endpoints."""

    def __init__(self, token_provider: TokenProvider, timeout: int = REQUEST_TIMEOUT):
        self._token_provider = token_provider
        self._timeout = timeout

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token_provider()}"}
        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise SheetsAPIError(f"Sheets request failed: {e}") from e

        if not response.ok:
            try:
                message = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text
            logger.debug(f"Sheets API {method} {url} -> {response.status_code}")
            raise SheetsAPIError(
                f"Sheets API error {response.status_code}: {message}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()

    def _values_url(self, spreadsheet_id: str, a1_range: str, action: str = "") -> str:
        return f"{API_BASE}/{spreadsheet_id}/values/{quote(a1_range, safe='')}{action}"

    def get_values(self, spreadsheet_id: str, a1_range: str) -> List[List[Any]]:
        """Read a range; trailing empty rows and cells are omitted by the API."""
        data = self._request("GET", self._values_url(spreadsheet_id, a1_range))
        return data.get("values", [])

    def update_values(
        self, spreadsheet_id: str, a1_range: str, values: List[List[Any]]
    ) -> Dict[str, Any]:
        return self._request(
            "PUT",
            self._values_url(spreadsheet_id, a1_range),
            params={"valueInputOption": "RAW"},
            json={"range": a1_range, "values": values},
        )

    def append_values(
        self, spreadsheet_id: str, a1_range: str, values: List[List[Any]]
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            self._values_url(spreadsheet_id, a1_range, ":append"),
            params={"valueInputOption": "RAW"},
            json={"values": values},
        )

    def clear_values(self, spreadsheet_id: str, a1_range: str) -> Dict[str, Any]:
        return self._request(
            "POST", self._values_url(spreadsheet_id, a1_range, ":clear"), json={}
        )

    def batch_update(
        self, spreadsheet_id: str, requests_: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"{API_BASE}/{spreadsheet_id}:batchUpdate",
            json={"requests": requests_},
        )

    def create_spreadsheet(self, title: str) -> Dict[str, Any]:
        """Create a spreadsheet.

        Returns:
            API response including 'spreadsheetId' and 'spreadsheetUrl'
        """
        return self._request("POST", API_BASE, json={"properties": {"title": title}})
