"""
Payment negotiation: pay for the stream schema and turn it into a session descriptor.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urljoin, urlparse

import httpx
from pydantic import ValidationError

from ws402.errors import NegotiationError, PaymentError
from ws402.models.payment import PaymentRequired
from ws402.models.schema import SchemaVersion, SessionDescriptor, StreamSchema
from ws402.transport.http import PaymentHttpClient, decode_payment_required

logger = logging.getLogger(__name__)

_VERSION_PREFIX = re.compile(r"^/(v1|v2)/")


def extract_token(endpoint_url: str) -> str:
    """Access token carried in the ``t`` query parameter, or ``""``."""
    try:
        query = parse_qs(urlparse(endpoint_url).query)
    except ValueError:
        return ""
    values = query.get("t")
    return values[0] if values else ""


def parse_schema_version(schema_path: str) -> SchemaVersion:
    path = schema_path
    if schema_path.startswith(("http://", "https://")):
        try:
            path = urlparse(schema_path).path
        except ValueError:
            path = schema_path
    match = _VERSION_PREFIX.match(path)
    return match.group(1) if match else "v1"  # type: ignore[return-value]


def build_renew_url(base_url: str, stream_id: str, version: SchemaVersion) -> str:
    return urljoin(base_url.rstrip("/") + "/", f"{version}/renew/stream/{stream_id}")


def parse_payment_required(response: httpx.Response) -> Optional[PaymentRequired]:
    return decode_payment_required(response)


class PaymentNegotiator:
    def __init__(self, http: PaymentHttpClient, schema_path: str):
        self._http = http
        self._schema_path = schema_path
        self.schema_version = parse_schema_version(schema_path)

    @property
    def http(self) -> PaymentHttpClient:
        return self._http

    def schema_url(self, schema_path: Optional[str] = None) -> str:
        path = schema_path or self._schema_path
        if path.startswith(("http://", "https://")):
            return path
        return urljoin(self._http.base_url + "/", path.lstrip("/"))

    def renew_url(self, stream_id: str) -> str:
        return build_renew_url(self._http.base_url, stream_id, self.schema_version)

    async def acquire_session(self, schema_path: Optional[str] = None) -> SessionDescriptor:
        url = self.schema_url(schema_path)
        version = parse_schema_version(schema_path) if schema_path else self.schema_version
        logger.info("Requesting x402 schema from %s", url)
        try:
            resp = await self._http.get(url)
        except PaymentError as e:
            raise NegotiationError(f"x402 schema payment failed: {e}", details=e.details)
        except httpx.HTTPError as e:
            raise NegotiationError(f"x402 schema request failed: {e}")

        if resp.status_code == 402:
            payment_required = parse_payment_required(resp)
            if payment_required is None or payment_required.select_requirement() is None:
                raise NegotiationError("x402 schema 402 carried no usable payment requirements",
                                       details={"status": 402})
            raise NegotiationError("x402 schema still requires payment after paying", details={"status": 402})
        if resp.status_code >= 400:
            raise NegotiationError(f"x402 schema failed: HTTP {resp.status_code}: {resp.text[:200]}",
                                   details={"status": resp.status_code})

        try:
            schema = StreamSchema.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise NegotiationError(f"x402 schema response shape invalid: {e}")

        token = extract_token(schema.websocket_endpoint)
        if not token:
            raise NegotiationError("x402 schema missing token", details={"websocketEndpoint": schema.websocket_endpoint})

        logger.info("x402 schema acquired: stream=%s endpoint=%s", schema.stream.id, schema.websocket_endpoint)
        return SessionDescriptor(
            endpoint_url=schema.websocket_endpoint,
            token=token,
            stream_id=schema.stream.id,
            schema_version=version,
        )
