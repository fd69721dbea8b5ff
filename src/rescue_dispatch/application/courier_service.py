from datetime import UTC, datetime
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import ValidationError

from rescue_dispatch.domain.courier_order import CourierOrder, CourierToken
from rescue_dispatch.shared.decorators import log_errors


class CourierAPIError(Exception):
    """Raised when the DODO courier API returns a non-2xx response."""


class CourierService:
    """Creates and cancels orders on the DODO courier dispatch API.

    The OAuth token is fetched on first use and reused for the lifetime of the
    instance, which is one job run.
    """

    def __init__(
        self,
        client: httpx.Client,
        orders_url: str,
        oauth_url: str,
        client_id: str,
        client_secret: str,
        scope: str,
        timeout: float = 30.0,
    ) -> None:
        self._client = client
        self._orders_url = orders_url.rstrip("/")
        self._oauth_url = oauth_url
        self._credentials = {
            "grant_type": "client_credentials",
            "scope": scope,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        self._timeout = timeout
        self._token: CourierToken | None = None

    def _check(self, response: httpx.Response, action: str) -> None:
        if not response.is_success:
            raise CourierAPIError(
                f"DODO API error {response.status_code} on {action}: {response.text}"
            )

    @log_errors
    def get_token(self) -> CourierToken:
        """Return the cached bearer token, requesting one if none is held yet."""
        if self._token is None:
            logger.info("Getting temporary DODO oauth token")
            response = self._client.post(
                self._oauth_url, data=self._credentials, timeout=self._timeout
            )
            self._check(response, "token request")
            try:
                self._token = CourierToken.model_validate(response.json())
            except ValidationError as exc:
                raise CourierAPIError(f"Unexpected DODO token response: {exc}") from exc
            logger.info(
                f"Successfully received temporary DODO oauth token "
                f"(expires in {self._token.expires_in}s)"
            )
        return self._token

    def _auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.get_token().access_token}"}

    @log_errors
    def create_order(self, order: CourierOrder) -> None:
        """POST ``order`` to the DODO orders endpoint.

        The response body is not read: once DODO answers 2xx the order exists
        there and must still be recorded in the store.
        """
        payload = order.to_payload()
        logger.debug(f"[DODO] create payload: {payload}")
        response = self._client.post(
            self._orders_url,
            headers=self._auth_headers(),
            json=payload,
            timeout=self._timeout,
        )
        self._check(response, f"create {order.identifier}")
        logger.info(f"[DODO] Order {order.identifier} accepted ({response.status_code})")

    @log_errors
    def cancel_order(self, identifier: str, reason: str) -> None:
        """Set the DODO order ``identifier`` to ``Cancelled``."""
        response = self._client.put(
            f"{self._orders_url}/{quote(identifier, safe='')}/status",
            headers=self._auth_headers(),
            json={
                "Status": "Cancelled",
                "Reason": reason,
                "StatusChangeTime": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z"),
            },
            timeout=self._timeout,
        )
        self._check(response, f"cancel {identifier}")
        logger.info(f"[DODO] Order {identifier} cancelled ({response.status_code})")
