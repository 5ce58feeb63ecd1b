"""Schema negotiation over x402 against httpx.MockTransport."""

import base64
import json

import httpx
import pytest

from ws402.errors import NegotiationError, PaymentError
from ws402.negotiator import build_renew_url, extract_token, parse_schema_version
from ws402.transport.http import PAYMENT_HEADER_V1, PAYMENT_HEADER_V2, PAYMENT_REQUIRED_HEADER

from conftest import FakeSigner, b64_header, payment_required_body, schema_body


def pay_then_serve(body, requests=None, version=1):
    header = PAYMENT_HEADER_V2 if version >= 2 else PAYMENT_HEADER_V1

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if header not in request.headers:
            if version >= 2:
                return httpx.Response(402, headers={PAYMENT_REQUIRED_HEADER: b64_header(payment_required_body(2))})
            return httpx.Response(402, json=payment_required_body(1))
        return httpx.Response(200, json=body)

    return handler


def test_extract_token():
    assert extract_token("wss://x402.test/ws?t=abc123") == "abc123"
    assert extract_token("wss://x402.test/ws?foo=1&t=xyz") == "xyz"
    assert extract_token("wss://x402.test/ws") == ""
    assert extract_token("wss://x402.test/ws?t=") == ""


def test_schema_version():
    assert parse_schema_version("/v1/schema/stream/mempool-sniff") == "v1"
    assert parse_schema_version("/v2/schema/stream/mempool-sniff") == "v2"
    assert parse_schema_version("https://x402.test/v2/schema/stream/x") == "v2"
    assert parse_schema_version("/schema/stream/x") == "v1"


def test_build_renew_url():
    assert build_renew_url("https://x402.test", "s1", "v1") == "https://x402.test/v1/renew/stream/s1"
    assert build_renew_url("https://x402.test/", "s1", "v2") == "https://x402.test/v2/renew/stream/s1"


@pytest.mark.asyncio
async def test_pays_then_returns_descriptor(make_negotiator, signer):
    requests = []
    negotiator = make_negotiator(pay_then_serve(schema_body(), requests))
    descriptor = await negotiator.acquire_session()

    assert descriptor.token == "abc123"
    assert descriptor.endpoint_url == "wss://x402.test/ws?t=abc123"
    assert descriptor.stream_id == "mempool-sniff"
    assert descriptor.schema_version == "v1"

    assert len(requests) == 2
    assert requests[0].url.path == "/v1/schema/stream/mempool-sniff"
    sent = json.loads(base64.b64decode(requests[1].headers[PAYMENT_HEADER_V1]))
    assert sent["payload"] == {"signature": "0xfeed"}
    assert len(signer.calls) == 1
    assert signer.calls[0][1]["network"] == "base-sepolia"


@pytest.mark.asyncio
async def test_v2_challenge_from_header(make_negotiator, signer):
    requests = []
    negotiator = make_negotiator(pay_then_serve(schema_body(), requests, version=2), schema_path="/v2/schema/stream/mempool-sniff")
    descriptor = await negotiator.acquire_session()
    assert descriptor.schema_version == "v2"
    assert PAYMENT_HEADER_V2 in requests[1].headers
    assert signer.calls[0][0].x402_version == 2
    assert negotiator.renew_url("mempool-sniff") == "https://x402.test/v2/renew/stream/mempool-sniff"


@pytest.mark.asyncio
async def test_free_schema_skips_payment(make_negotiator, signer):
    negotiator = make_negotiator(lambda request: httpx.Response(200, json=schema_body()))
    descriptor = await negotiator.acquire_session()
    assert descriptor.token == "abc123"
    assert signer.calls == []


@pytest.mark.asyncio
async def test_missing_token(make_negotiator):
    negotiator = make_negotiator(pay_then_serve(schema_body(endpoint="wss://x402.test/ws")))
    with pytest.raises(NegotiationError, match="missing token"):
        await negotiator.acquire_session()


@pytest.mark.asyncio
async def test_still_402_after_paying(make_negotiator):
    negotiator = make_negotiator(lambda request: httpx.Response(402, json=payment_required_body()))
    with pytest.raises(NegotiationError, match="still requires payment"):
        await negotiator.acquire_session()


@pytest.mark.asyncio
async def test_unusable_challenge(make_negotiator, signer):
    negotiator = make_negotiator(lambda request: httpx.Response(402, json={"accepts": []}))
    with pytest.raises(NegotiationError, match="no usable payment requirements"):
        await negotiator.acquire_session()
    assert signer.calls == []


@pytest.mark.asyncio
async def test_bad_shape(make_negotiator):
    body = schema_body()
    del body["websocketEndpoint"]
    negotiator = make_negotiator(pay_then_serve(body))
    with pytest.raises(NegotiationError, match="shape invalid"):
        await negotiator.acquire_session()


@pytest.mark.asyncio
async def test_non_json_body(make_negotiator):
    negotiator = make_negotiator(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(NegotiationError, match="shape invalid"):
        await negotiator.acquire_session()


@pytest.mark.asyncio
async def test_http_error_status(make_negotiator):
    negotiator = make_negotiator(lambda request: httpx.Response(503, text="down"))
    with pytest.raises(NegotiationError) as exc_info:
        await negotiator.acquire_session()
    assert exc_info.value.details == {"status": 503}


@pytest.mark.asyncio
async def test_signer_failure(make_negotiator):
    failing = FakeSigner(error=PaymentError("Unsupported network 'solana'"))
    negotiator = make_negotiator(pay_then_serve(schema_body()), signer_=failing)
    with pytest.raises(NegotiationError, match="payment failed"):
        await negotiator.acquire_session()


@pytest.mark.asyncio
async def test_network_failure(make_negotiator):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    negotiator = make_negotiator(handler)
    with pytest.raises(NegotiationError, match="request failed"):
        await negotiator.acquire_session()
