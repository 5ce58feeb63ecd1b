"""
Token renewal strategies.

``DirectRenewal`` pays over HTTP and gets a fresh token back. ``ChallengeRenewal``
only fetches the 402 challenge and signs it; the payment is then sent over the
live websocket as ``renew_inband`` and the server confirms with ``renewed``.
"""

import abc
import logging
from typing import Union

import httpx
from pydantic import ValidationError

from ws402.errors import PaymentError, RenewalError
from ws402.models.payment import InbandPayment
from ws402.models.schema import AuthToken
from ws402.negotiator import PaymentNegotiator, parse_payment_required
from ws402.signers import Signer

logger = logging.getLogger(__name__)


class RenewalStrategy(abc.ABC):
    method: str = ""

    def __init__(self, negotiator: PaymentNegotiator, stream_id: str):
        self._negotiator = negotiator
        self.renew_url = negotiator.renew_url(stream_id)

    @abc.abstractmethod
    async def renew(self, old_token: str) -> Union[AuthToken, InbandPayment]:
        """Raises RenewalError."""


class DirectRenewal(RenewalStrategy):
    method = "http"

    async def renew(self, old_token: str) -> AuthToken:
        logger.info("Requesting http renew from %s", self.renew_url)
        try:
            resp = await self._negotiator.http.post(self.renew_url, {"token": old_token})
        except PaymentError as e:
            raise RenewalError(f"renew payment failed: {e}", details=e.details)
        except httpx.HTTPError as e:
            raise RenewalError(f"renew request failed: {e}")

        if not resp.is_success:
            raise RenewalError(f"renew failed: {resp.status_code}", details={"status": resp.status_code})
        try:
            renewed = AuthToken.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise RenewalError(f"renew response shape invalid: {e}")

        logger.info("http renew ok: expires_at=%s slice_seconds=%s", renewed.expires_at, renewed.slice_seconds)
        return renewed


class ChallengeRenewal(RenewalStrategy):
    method = "inband"

    def __init__(self, negotiator: PaymentNegotiator, stream_id: str, signer: Signer):
        super().__init__(negotiator, stream_id)
        self._signer = signer

    async def renew(self, old_token: str) -> InbandPayment:
        try:
            resp = await self._negotiator.http.post(self.renew_url, {"token": old_token}, paid=False)
        except httpx.HTTPError as e:
            raise RenewalError(f"renew challenge request failed: {e}")

        if resp.status_code != 402:
            raise RenewalError(f"expected 402 challenge, got {resp.status_code}", details={"status": resp.status_code})

        payment_required = parse_payment_required(resp)
        requirement = payment_required.select_requirement() if payment_required else None
        if payment_required is None or requirement is None:
            raise RenewalError("payment-required response shape invalid")
        logger.info("Received inband challenge: accepts=%d", len(payment_required.accepts))

        try:
            payload = self._signer.create_payment_payload(payment_required, requirement)
        except PaymentError as e:
            raise RenewalError(f"inband payment payload failed: {e}", details=e.details)
        return InbandPayment(requirement=requirement, payload=payload)


def create_renewal_strategy(
    method: str,
    negotiator: PaymentNegotiator,
    stream_id: str,
    signer: Signer,
) -> RenewalStrategy:
    if method == "inband":
        return ChallengeRenewal(negotiator, stream_id, signer)
    return DirectRenewal(negotiator, stream_id)
