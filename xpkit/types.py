"""Response envelopes returned by the request engine.

Payloads inside the envelopes are left as opaque JSON; these types only
describe the envelope shapes that the platform uses across all services.
"""

from typing import Any, Literal, TypedDict, Union

FilterOptions = dict[str, Union[str, int, float, bool, None]]

SsoProvider = Literal["apple", "facebook", "google", "linkedin", "microsoft", "xpkit"]

IdentificationType = Literal["qrcode", "pdf417"]


class ErrorResponse(TypedDict, total=False):
    error: str
    description: str
    extra_info: dict[str, Any]


class XPKitResource(TypedDict):
    resource: dict[str, Any]
    resource_id: str
    resource_url: str


class XPKitResources(TypedDict):
    count: int
    next: int | None
    next_token: str | None
    previous: int | None
    previous_token: str | None
    results: list[XPKitResource]


class XPKitAcknowledgement(TypedDict):
    job_id: str
    info: str
    status: str


XPKitAcknowledgements = list[XPKitAcknowledgement]

XPKitSummaryResponse = dict[str, int]

XPKitResponse = Union[
    XPKitResource,
    XPKitResources,
    XPKitAcknowledgement,
    XPKitAcknowledgements,
    XPKitSummaryResponse,
    ErrorResponse,
]
