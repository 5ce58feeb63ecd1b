"""
Payment-aware HTTP client.

A request that comes back ``402 Payment Required`` is paid for once: the
challenge is decoded, the first offered requirement is signed by the
:class:`~ws402.signers.Signer` and the request is resent with the payment
header attached. A second 402 is returned to the caller as-is.
"""

import base64
import binascii
import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ws402.models.payment import PaymentRequired
from ws402.signers import Signer

logger = logging.getLogger(__name__)

USER_AGENT = "ws402-client/0.1.0"
PAYMENT_REQUIRED_HEADER = "PAYMENT-REQUIRED"
PAYMENT_HEADER_V1 = "X-PAYMENT"
PAYMENT_HEADER_V2 = "PAYMENT-SIGNATURE"


def encode_payment_header(payload: dict[str, Any]) -> str:
    return base64.b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8")).decode("ascii")


def decode_payment_required(response: httpx.Response) -> Optional[PaymentRequired]:
    """Decode a 402 challenge from the x402 v2 header, falling back to the v1 JSON body."""
    data: Any = None
    header = response.headers.get(PAYMENT_REQUIRED_HEADER)
    if header:
        try:
            data = json.loads(base64.b64decode(header))
        except (binascii.Error, ValueError):
            data = None
    if data is None:
        try:
            data = response.json()
        except ValueError:
            return None
    if not isinstance(data, dict):
        return None
    try:
        return PaymentRequired.model_validate(data)
    except ValidationError:
        return None


class PaymentHttpClient:
    def __init__(
        self,
        base_url: str,
        signer: Signer,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._signer = signer
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def request(
        self,
        method: str,
        url: str,
        body: Optional[dict[str, Any]] = None,
        paid: bool = True,
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json"} if body is not None else {}
        resp = await self._client.request(method, url, json=body, headers=headers)
        if not paid or resp.status_code != 402:
            return resp

        payment_required = decode_payment_required(resp)
        requirement = payment_required.select_requirement() if payment_required else None
        if payment_required is None or requirement is None:
            logger.warning("402 from %s carried no usable payment requirements", url)
            return resp

        payload = self._signer.create_payment_payload(payment_required, requirement)
        header = PAYMENT_HEADER_V2 if payment_required.x402_version >= 2 else PAYMENT_HEADER_V1
        logger.info("Paying for %s %s (scheme=%s, network=%s)", method, url,
                    requirement.get("scheme"), requirement.get("network"))
        headers[header] = encode_payment_header(payload)
        return await self._client.request(method, url, json=body, headers=headers)

    async def get(self, url: str, paid: bool = True) -> httpx.Response:
        return await self.request("GET", url, paid=paid)

    async def post(self, url: str, body: Optional[dict[str, Any]] = None, paid: bool = True) -> httpx.Response:
        return await self.request("POST", url, body=body, paid=paid)

    async def close(self) -> None:
        await self._client.aclose()
