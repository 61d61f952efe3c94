import json
import logging
from typing import Dict, Optional
from urllib.parse import quote

import httpx

from gebeya.core.exceptions import ChapaAPIError

logger = logging.getLogger(__name__)


class ChapaClient:
    """
    Asynchronous client for the Chapa payment gateway REST API (v1).

    Only the calls the checkout needs are implemented: transaction verification.
    Authentication is a bearer secret key taken from settings.

    Documentation: https://developer.chapa.co/
    """

    BASE_URL = "https://api.chapa.co/v1"

    def __init__(self, secret_key: str, base_url: Optional[str] = None, timeout: float = 30.0):
        """
        Args:
            secret_key: Chapa secret key (CHASECK_...)
            base_url: Override for the API root, e.g. a local stub
            timeout: Per-request HTTP timeout in seconds
        """
        self.secret_key = secret_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Accept": "application/json",
        }

    @staticmethod
    def _error_message(response) -> str:
        # Chapa error bodies look like {"message": "...", "status": "failed", "data": null}
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and body.get("message"):
            message = body["message"]
            return message if isinstance(message, str) else json.dumps(message)
        return response.text

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Dict:
        """
        Make a request to the Chapa API

        Returns:
            Dict: Decoded JSON body

        Raises:
            ChapaAPIError: On non-2xx responses, network errors, timeouts or
                undecodable bodies. ``timed_out`` is set for timeouts.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = self._get_headers()

        masked_headers = headers.copy()
        masked_headers["Authorization"] = "Bearer [REDACTED]"
        logger.debug(f"Making {method} request to {url}")
        logger.debug(f"Headers: {masked_headers}")
        if params:
            logger.debug(f"Params: {params}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=headers,
                    json=data,
                    params=params,
                )
        except httpx.TimeoutException as e:
            logger.error(f"Chapa timeout error: {str(e)}")
            raise ChapaAPIError(f"Request timed out: {str(e)}", timed_out=True)
        except httpx.RequestError as e:
            logger.error(f"Chapa network error: {str(e)}")
            raise ChapaAPIError(f"Network error: {str(e)}")

        if response.status_code not in (200, 201):
            message = self._error_message(response)
            logger.error(f"Chapa API error ({response.status_code}): {message}")
            raise ChapaAPIError(f"Request failed: {message}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError:
            logger.error(f"Chapa returned a non-JSON body: {response.text[:200]}")
            raise ChapaAPIError("Malformed response from payment gateway", status_code=response.status_code)

    async def verify_transaction(self, tx_ref: str) -> Dict:
        """
        Query the status of a transaction.

        Args:
            tx_ref: Merchant transaction reference used when the payment was initialized

        Returns:
            Dict: Response envelope ``{"message", "status", "data": {...}}``
        """
        return await self._make_request("GET", f"/transaction/verify/{quote(tx_ref, safe='')}")
