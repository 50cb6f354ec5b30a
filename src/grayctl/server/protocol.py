"""Request models and dispatch for the control surface.

One JSON object per line in, one JSON object per line out. Requests are a
discriminated union on ``action``; an optional ``id`` is echoed back so
callers can match asynchronous responses.

Response shapes:

* ``get_override``: ``{"active": true, "state", "expires_at", "remaining_ms"}``
  or ``{"active": false}``
* every other action: ``{"success": true, ...}`` or
  ``{"success": false, "error": "..."}``
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from grayctl.services.result import ServiceResult

if TYPE_CHECKING:
    from grayctl.infrastructure.observers import Channel
    from grayctl.services.coordinator import Coordinator

ChannelFactory = Callable[[str], "Channel"]


class _Request(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    id: str | int | None = None


class GetOverride(_Request):
    action: Literal["get_override"]
    domain: str


class SetOverride(_Request):
    action: Literal["set_override"]
    domain: str
    state: str
    duration_ms: int


class ClearOverride(_Request):
    action: Literal["clear_override"]
    domain: str


class ResyncAll(_Request):
    action: Literal["resync_all"]


class AddDomain(_Request):
    action: Literal["add_domain"]
    domain: str


class RemoveDomain(_Request):
    action: Literal["remove_domain"]
    domain: str


class Attach(_Request):
    action: Literal["attach"]
    observer: str
    url: str


class Forget(_Request):
    action: Literal["forget"]
    observer: str


Request = Annotated[
    GetOverride
    | SetOverride
    | ClearOverride
    | ResyncAll
    | AddDomain
    | RemoveDomain
    | Attach
    | Forget,
    Field(discriminator="action"),
]

_REQUEST_ADAPTER: TypeAdapter[Request] = TypeAdapter(Request)


def parse_request(raw: dict[str, Any]) -> Request:
    """Validate a decoded request object. Raises ValidationError."""
    return _REQUEST_ADAPTER.validate_python(raw)


def _reply(result: ServiceResult) -> dict[str, Any]:
    if not result.ok:
        assert result.error is not None
        return {"success": False, "error": result.error.message, "code": result.error.code}
    return {"success": True, **result.data}


def handle_request(
    coordinator: Coordinator,
    request: Request,
    channel_factory: ChannelFactory,
) -> dict[str, Any]:
    """Dispatch one validated request and build its response object."""
    match request:
        case GetOverride(domain=domain):
            result = coordinator.get_override_status(domain)
            if not result.ok:
                response = {"active": False}
            elif result.data["active"]:
                response = {
                    "active": True,
                    "state": result.data["state"],
                    "expires_at": result.data["expires_at"],
                    "remaining_ms": result.data["remaining_ms"],
                    "preceding_membership": result.data["preceding_membership"],
                }
            else:
                response = {"active": False}
        case SetOverride(domain=domain, state=state, duration_ms=duration_ms):
            response = _reply(coordinator.set_override(domain, state, duration_ms))
        case ClearOverride(domain=domain):
            response = _reply(coordinator.clear_override(domain))
        case ResyncAll():
            response = _reply(coordinator.resync_all())
        case AddDomain(domain=domain):
            response = _reply(coordinator.add_permanent(domain))
        case RemoveDomain(domain=domain):
            response = _reply(coordinator.remove_permanent(domain))
        case Attach(observer=observer, url=url):
            channel = channel_factory(observer)
            response = _reply(coordinator.attach_observer(observer, url, channel))
        case Forget(observer=observer):
            response = _reply(coordinator.forget_observer(observer))
    if request.id is not None:
        response["id"] = request.id
    return response


def handle_line(
    coordinator: Coordinator,
    line: str,
    channel_factory: ChannelFactory,
) -> dict[str, Any]:
    """Decode, validate, and dispatch one protocol line.

    Malformed input never raises; it yields an ``INVALID_REQUEST`` response.
    """
    try:
        raw = json.loads(line)
    except json.JSONDecodeError as exc:
        return {"success": False, "code": "INVALID_REQUEST", "error": f"Invalid JSON: {exc}"}
    if not isinstance(raw, dict):
        return {"success": False, "code": "INVALID_REQUEST", "error": "Expected a JSON object"}
    try:
        request = parse_request(raw)
    except ValidationError as exc:
        response: dict[str, Any] = {
            "success": False,
            "code": "INVALID_REQUEST",
            "error": exc.errors(include_url=False)[0]["msg"],
        }
        if "id" in raw:
            response["id"] = raw["id"]
        return response
    return handle_request(coordinator, request, channel_factory)
