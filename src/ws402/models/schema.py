"""
Stream schema returned by the paid schema endpoint, and the session/token values derived from it.
"""

from typing import Literal, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr

SchemaVersion = Literal["v1", "v2"]


class StreamPricing(BaseModel):
    price_per_second: float = Field(alias="pricePerSecond")
    currency: str
    estimated_duration: float = Field(alias="estimatedDuration")

    model_config = {"populate_by_name": True}


class StreamPaymentDetails(BaseModel):
    scheme: Literal["exact"]
    network: str
    asset: str
    pay_to: str = Field(alias="payTo")
    max_amount_required: str = Field(alias="maxAmountRequired")
    max_timeout_seconds: float = Field(alias="maxTimeoutSeconds")

    model_config = {"populate_by_name": True}


class StreamInfo(BaseModel):
    id: str
    title: str
    description: str


class StreamSchema(BaseModel):
    protocol: Literal["ws402"]
    version: Literal["1"]
    websocket_endpoint: str = Field(alias="websocketEndpoint")
    pricing: StreamPricing
    payment_details: StreamPaymentDetails = Field(alias="paymentDetails")
    stream: StreamInfo

    model_config = {"populate_by_name": True}


class SessionDescriptor(BaseModel):
    """Everything needed to open and later renew one streaming session."""
    endpoint_url: str
    token: str
    stream_id: str
    schema_version: SchemaVersion = "v1"

    model_config = {"frozen": True}


class AuthToken(BaseModel):
    """Body of a successful direct renewal."""
    token: StrictStr
    expires_at: StrictStr = Field(alias="expiresAt")
    slice_seconds: Union[StrictInt, StrictFloat] = Field(alias="sliceSeconds")

    model_config = {"populate_by_name": True, "frozen": True}
