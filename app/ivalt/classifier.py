"""
Outcome classification for status-check responses.

The remote verifier only distinguishes "200 = approved" from "anything else";
non-200 bodies may carry {"error": {"detail": "..."}}. Detail text is matched
case-insensitively: timezone first, then geofence. A parseable failure with no
recognised detail counts as still pending, and so does an empty body; a
non-empty body that is not JSON is an error.
"""
import json
from dataclasses import dataclass

from app.core.state_machine import (
    APPROVED,
    PENDING,
    INVALID_TIMEZONE,
    INVALID_GEOFENCE,
    ERROR,
)


@dataclass(frozen=True)
class RawResponse:
    statusCode: int
    body: str = ""


def _detail_text(data) -> str:
    if not isinstance(data, dict):
        return ""
    err = data.get("error")
    if not isinstance(err, dict):
        return ""
    detail = err.get("detail")
    if detail is None:
        return ""
    return str(detail).lower()


def classify(raw: RawResponse) -> str:
    if raw.statusCode == 200:
        return APPROVED

    body = (raw.body or "").strip()
    if not body:
        return PENDING

    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return ERROR

    detail = _detail_text(data)
    if "timezone" in detail:
        return INVALID_TIMEZONE
    if "geofence" in detail or "geofencing" in detail:
        return INVALID_GEOFENCE
    # TODO: fail fast once the verifier exposes an explicit rejected status.
    return PENDING
