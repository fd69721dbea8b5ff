from urllib.parse import quote

import httpx
from loguru import logger

from rescue_dispatch.shared.decorators import log_errors


class AirtableError(Exception):
    """Raised when the Airtable REST API returns an error payload."""


class AirtableClient:
    """Thin httpx wrapper for the Airtable REST API of one base."""

    BASE_URL = "https://api.airtable.com/v0"
    DEFAULT_VIEW = "Grid view"

    def __init__(self, client: httpx.Client, base_id: str, api_key: str) -> None:
        self._client = client
        self._base_url = f"{self.BASE_URL}/{base_id}"
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _table_url(self, table: str) -> str:
        return f"{self._base_url}/{quote(table, safe='')}"

    def _send(self, method: str, table: str, **kwargs) -> dict:
        response = self._client.request(
            method, self._table_url(table), headers=self._headers, **kwargs
        )
        if not response.is_success:
            raise AirtableError(
                f"Airtable API error {response.status_code} on {table!r}: {response.text}"
            )
        body: dict = response.json()
        if error := body.get("error"):
            raise AirtableError(error)
        return body

    @log_errors
    def list_records(
        self,
        table: str,
        formula: str | None = None,
        view: str | None = DEFAULT_VIEW,
    ) -> list[dict]:
        """Return all records of ``table`` matching ``formula``.

        Follows the ``offset`` cursor until Airtable stops returning one.
        """
        records: list[dict] = []
        offset: str | None = None

        while True:
            params: dict = {}
            if view:
                params["view"] = view
            if formula:
                params["filterByFormula"] = formula
            if offset:
                params["offset"] = offset

            body = self._send("GET", table, params=params)
            records.extend(body.get("records", []))

            offset = body.get("offset")
            if not offset:
                break
            logger.debug(f"[Airtable] {table}: fetched {len(records)} record(s), next page")

        return records

    @log_errors
    def update_records(self, table: str, records: list[dict]) -> list[dict]:
        """PATCH ``records`` (each ``{"id": ..., "fields": {...}}``)."""
        return self._send("PATCH", table, json={"records": records}).get("records", [])

    @log_errors
    def create_records(self, table: str, records: list[dict]) -> list[dict]:
        """POST new ``records`` (each ``{"fields": {...}}``)."""
        return self._send("POST", table, json={"records": records}).get("records", [])
