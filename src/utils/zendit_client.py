# utils/zendit_client.py

from typing import Any, Dict, List, Optional, Tuple

import httpx

from utils.config import ZenditConfig
from utils.logger import get_logger

logger = get_logger("zendit_client")


class ZenditError(Exception):
    """Base class for failures talking to Zendit."""


class ZenditAuthError(ZenditError):
    """The token endpoint refused or returned no access_token."""


class ZenditUnavailableError(ZenditError):
    """Zendit could not be reached (connection error, timeout)."""


class ZenditResponseError(ZenditError):
    """Zendit answered with something that is not JSON."""


class ZenditClient:
    """
    Thin wrapper around the three Zendit calls a top-up needs.

    One instance per invocation. Nothing is cached: every top-up fetches
    a fresh token and a fresh operator list.

        with ZenditClient(config) as zendit:
            token = zendit.fetch_token()
            operators = zendit.find_operators(token, "+2348030000000")
    """

    def __init__(self, config: ZenditConfig, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        self._http = httpx.Client(timeout=config.timeout_seconds, transport=transport)

    def __enter__(self) -> "ZenditClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                "zendit.transport_error",
                extra={"method": method, "url": url, "error": str(e)},
            )
            raise ZenditUnavailableError(str(e)) from e

    def fetch_token(self) -> str:
        """
        Client-credentials grant. Zendit only accepts it form-encoded.
        """
        resp = self._request(
            "POST",
            self.config.auth_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
        )

        if not resp.is_success:
            logger.warning("zendit.token_rejected", extra={"http_status": resp.status_code})
            raise ZenditAuthError(f"token endpoint returned {resp.status_code}")

        try:
            token = resp.json().get("access_token")
        except (ValueError, AttributeError):
            token = None

        if not token:
            logger.warning("zendit.token_missing", extra={"http_status": resp.status_code})
            raise ZenditAuthError("token endpoint returned no access_token")

        return token

    def find_operators(self, token: str, phone: str) -> List[Dict[str, Any]]:
        """
        Operators Zendit associates with the phone number, in provider order.
        Returns [] when the response has no usable data list.
        """
        resp = self._request(
            "GET",
            f"{self.config.api_base_url}/v1/airtime/operators",
            params={"phoneNumber": phone},
            headers={"Authorization": f"Bearer {token}"},
        )

        try:
            data = resp.json()
        except ValueError:
            logger.warning(
                "zendit.operators_not_json",
                extra={"http_status": resp.status_code, "body_preview": resp.text[:200]},
            )
            return []

        operators = data.get("data") if isinstance(data, dict) else None
        if not isinstance(operators, list):
            return []

        logger.info(
            "zendit.operators_found",
            extra={"http_status": resp.status_code, "count": len(operators)},
        )
        return operators

    def submit_topup(self, token: str, payload: Dict[str, Any]) -> Tuple[bool, Any]:
        """
        POST the top-up. Returns (provider reported success, provider JSON).
        """
        resp = self._request(
            "POST",
            f"{self.config.api_base_url}/v1/airtime/topups",
            json=payload,
            headers={"Authorization": f"Bearer {token}"},
        )

        try:
            body = resp.json()
        except ValueError as e:
            logger.error(
                "zendit.topup_not_json",
                extra={"http_status": resp.status_code, "body_preview": resp.text[:200]},
            )
            raise ZenditResponseError(f"top-up response was not JSON ({resp.status_code})") from e

        logger.info(
            "zendit.topup_response",
            extra={
                "http_status": resp.status_code,
                "custom_identifier": payload.get("customIdentifier"),
            },
        )
        return resp.is_success, body
