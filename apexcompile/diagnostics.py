"""Compiler diagnostics rendering.

CompilerErrors on a ContainerAsyncRequest arrives either as a JSON array
or as that array serialized into a string, e.g.:

    [{"extent": "ApexClass", "name": "AccountService", "line": 12,
      "column": 5, "problem": "Variable does not exist: acct"}]

Both shapes render to the same lines:

    AccountService: line 12, column 5: Variable does not exist: acct

Formatting fails open: a payload that can't be parsed is returned as-is
so the failure report is never blocked by it.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from apexcompile.errors import DiagnosticUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompilerDiagnostic:
    unit_name: str
    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "CompilerDiagnostic":
        return cls(
            unit_name=record.get("name") or record.get("extent") or "Unknown",
            message=record.get("problem") or record.get("message") or "Unknown error",
            line=record.get("line") or None,
            column=record.get("column"),
        )

    def render(self) -> str:
        if self.line:
            return f"{self.unit_name}: line {self.line}, column {self.column}: {self.message}"
        return f"{self.unit_name}: {self.message}"


def parse_compiler_errors(raw: Any) -> Optional[list[CompilerDiagnostic]]:
    """
    Parse a CompilerErrors value.

    Returns:
        Diagnostics in payload order, or None when there are none

    Raises:
        DiagnosticUnavailable: If the value isn't a list of error records
    """
    if not raw:
        return None

    errors = raw
    if isinstance(raw, str):
        try:
            errors = json.loads(raw)
        except ValueError as e:
            raise DiagnosticUnavailable(f"CompilerErrors is not valid JSON: {e}") from e

    if not isinstance(errors, list):
        raise DiagnosticUnavailable(f"CompilerErrors is not a list: {type(errors).__name__}")
    if not errors:
        return None
    if not all(isinstance(e, dict) for e in errors):
        raise DiagnosticUnavailable("CompilerErrors contains non-object entries")

    return [CompilerDiagnostic.from_record(e) for e in errors]


def format_compiler_errors(raw: Any) -> Optional[str]:
    """Render CompilerErrors as newline-separated lines, or None if empty."""
    try:
        diagnostics = parse_compiler_errors(raw)
    except DiagnosticUnavailable as e:
        logger.debug(f"Returning raw CompilerErrors: {e}")
        return str(raw)

    if not diagnostics:
        return None
    return "\n".join(d.render() for d in diagnostics)
