"""Shared fakes: a recording signer and canned x402 server responses."""

import base64
import json
from typing import Any, Callable, Optional

import httpx
import pytest

from ws402.negotiator import PaymentNegotiator
from ws402.transport.http import PaymentHttpClient

BASE_URL = "https://x402.test"
SCHEMA_PATH = "/v1/schema/stream/mempool-sniff"

REQUIREMENT = {
    "scheme": "exact",
    "network": "base-sepolia",
    "asset": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
    "payTo": "0x209693Bc6afc0C5328bA36FaF03C514EF312287C",
    "maxAmountRequired": "1000",
    "maxTimeoutSeconds": 60,
    "resource": BASE_URL + SCHEMA_PATH,
    "extra": {"name": "USDC", "version": "2"},
}


def payment_required_body(version: int = 1) -> dict[str, Any]:
    return {"x402Version": version, "accepts": [REQUIREMENT], "error": "X-PAYMENT header is required"}


def schema_body(endpoint: str = "wss://x402.test/ws?t=abc123", stream_id: str = "mempool-sniff") -> dict[str, Any]:
    return {
        "protocol": "ws402",
        "version": "1",
        "websocketEndpoint": endpoint,
        "pricing": {"pricePerSecond": 0.0001, "currency": "USDC", "estimatedDuration": 60},
        "paymentDetails": {
            "scheme": "exact",
            "network": "base-sepolia",
            "asset": REQUIREMENT["asset"],
            "payTo": REQUIREMENT["payTo"],
            "maxAmountRequired": "1000",
            "maxTimeoutSeconds": 60,
        },
        "stream": {"id": stream_id, "title": "Mempool sniff", "description": "Pending transactions"},
    }


def b64_header(payload: dict[str, Any]) -> str:
    return base64.b64encode(json.dumps(payload).encode()).decode()


class FakeSigner:
    def __init__(self, error: Optional[Exception] = None):
        self.calls: list[tuple[Any, dict[str, Any]]] = []
        self._error = error

    def create_payment_payload(self, payment_required, requirement):
        self.calls.append((payment_required, requirement))
        if self._error is not None:
            raise self._error
        return {
            "x402Version": payment_required.x402_version,
            "scheme": requirement["scheme"],
            "network": requirement["network"],
            "payload": {"signature": "0xfeed"},
        }


Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def make_negotiator(signer):
    def factory(handler: Handler, schema_path: str = SCHEMA_PATH, signer_: Optional[FakeSigner] = None):
        http = PaymentHttpClient(BASE_URL, signer_ or signer, transport=httpx.MockTransport(handler))
        return PaymentNegotiator(http, schema_path)

    return factory
