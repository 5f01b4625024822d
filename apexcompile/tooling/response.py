"""
ToolingResponse - typed result of one Tooling REST call.

The REST endpoint answers with one of three shapes:
- a JSON object (created record, read record)         -> RECORD
- a JSON array whose first element carries errorCode  -> ERROR
- nothing at all (DELETE answers 204 No Content)      -> EMPTY

parse_response() classifies the raw CLI output once, so callers switch on
`kind` instead of inspecting the payload.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from apexcompile.errors import RemoteApiError, SfCommandError


class ResponseKind(str, Enum):
    RECORD = "record"
    ERROR = "error"
    EMPTY = "empty"


@dataclass(frozen=True)
class ToolingResponse:
    """
    Attributes:
        kind: RECORD, ERROR or EMPTY
        record: Parsed payload (RECORD only; empty dict otherwise)
        error_code: errorCode of the first error (ERROR only)
        error_message: message of the first error (ERROR only)
    """
    kind: ResponseKind
    record: dict[str, Any] = field(default_factory=dict)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is not ResponseKind.ERROR

    @property
    def id(self) -> Optional[str]:
        return self.record.get("id") or self.record.get("Id")

    def raise_for_error(self) -> dict[str, Any]:
        """Return the record, raising RemoteApiError for the error variant."""
        if not self.ok:
            raise RemoteApiError(self.error_code or "UNKNOWN_ERROR", self.error_message or "")
        return self.record


def parse_response(output: Optional[str]) -> ToolingResponse:
    """
    Classify raw `sf api request rest` output.

    Raises:
        SfCommandError: If the output is not JSON
    """
    if not output or not output.strip():
        return ToolingResponse(kind=ResponseKind.EMPTY)

    try:
        parsed = json.loads(output)
    except ValueError as e:
        raise SfCommandError(f"Unparseable Tooling API response: {output.strip()[:500]}") from e

    if isinstance(parsed, list):
        first = parsed[0] if parsed else None
        if isinstance(first, dict) and first.get("errorCode"):
            return ToolingResponse(
                kind=ResponseKind.ERROR,
                error_code=first["errorCode"],
                error_message=first.get("message", ""),
            )
        return ToolingResponse(kind=ResponseKind.RECORD, record={"records": parsed})

    if isinstance(parsed, dict):
        return ToolingResponse(kind=ResponseKind.RECORD, record=parsed)

    return ToolingResponse(kind=ResponseKind.RECORD, record={"value": parsed})
