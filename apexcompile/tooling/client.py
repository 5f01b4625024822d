"""
ToolingClient - the boundary where apexcompile talks to the org.

Every call shells out to the sf CLI:
- query:   sf data query --query <soql> --use-tooling-api --json
- request: sf api request rest /services/data/v<ver>/tooling<path> --method <M>

Blocking variants (subprocess.run) serve the sequential phases; the
*_async variants (asyncio.create_subprocess_exec) serve member staging,
where many calls are in flight at once.

Request bodies are staged through a temp file passed as `--body @file`.
Each call gets its own file, named from a token owned by this client
instance and a per-instance sequence, and the file is removed when the
call finishes whatever the outcome.

Error classification:
- Query payload with status != 0 -> RemoteQueryError
- REST error payload             -> RemoteApiError (via ToolingResponse)
- Process failure, no stdout     -> SfCommandError
"""

import asyncio
import itertools
import json
import logging
import os
import re
import subprocess
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from apexcompile.config import DEFAULT_API_VERSION
from apexcompile.errors import RemoteQueryError, SfCommandError
from apexcompile.tooling.response import ToolingResponse, parse_response

logger = logging.getLogger(__name__)

# Large classes come back in query results; keep the limit generous
MAX_OUTPUT_BYTES = 10 * 1024 * 1024

_WARNING_LINE_RE = re.compile(r"^Warning:.*\n?", re.MULTILINE)


def clean_stderr(stderr: Optional[str]) -> str:
    """Strip sf CLI 'Warning:' lines from stderr."""
    if not stderr:
        return ""
    return _WARNING_LINE_RE.sub("", stderr).strip()


class ToolingClient:
    """Tooling API access through the sf CLI."""

    def __init__(
        self,
        target_org: Optional[str] = None,
        api_version: str = DEFAULT_API_VERSION,
        sf_bin: str = "sf",
        tmp_dir: Optional[Path] = None,
    ):
        """
        Args:
            target_org: sf alias or username; None uses the CLI's default org
            api_version: Tooling API version, e.g. "65.0"
            sf_bin: sf executable name or path
            tmp_dir: Where request bodies are staged (default: system temp)
        """
        self.target_org = target_org
        self.api_version = api_version
        self.sf_bin = sf_bin
        self.tmp_dir = Path(tmp_dir) if tmp_dir else Path(tempfile.gettempdir())
        self._token = uuid.uuid4().hex[:12]
        self._seq = itertools.count(1)

    # -------------------------------------------------------------------------
    # Command construction
    # -------------------------------------------------------------------------

    def _org_args(self) -> list[str]:
        return ["--target-org", self.target_org] if self.target_org else []

    def query_args(self, soql: str) -> list[str]:
        return ["data", "query", "--query", soql, "--use-tooling-api", "--json", *self._org_args()]

    def resource_url(self, resource_path: str) -> str:
        return f"/services/data/v{self.api_version}/tooling{resource_path}"

    def request_args(self, resource_path: str, method: str, body_file: Optional[Path] = None) -> list[str]:
        args = ["api", "request", "rest", self.resource_url(resource_path), "--method", method.upper()]
        args += self._org_args()
        if body_file is not None:
            args += ["--body", f"@{body_file}"]
        return args

    def next_body_file(self) -> Path:
        """Temp file path unique to this client and call."""
        return self.tmp_dir / f"apexcompile_{os.getpid()}_{self._token}_{next(self._seq)}.json"

    @contextmanager
    def _staged_body(self, body: Optional[dict[str, Any]]) -> Iterator[Optional[Path]]:
        if body is None:
            yield None
            return

        body_file = self.next_body_file()
        body_file.write_text(json.dumps(body), encoding="utf-8")
        try:
            yield body_file
        finally:
            try:
                body_file.unlink()
            except FileNotFoundError:
                pass

    # -------------------------------------------------------------------------
    # Process execution
    # -------------------------------------------------------------------------

    def _run(self, args: list[str]) -> str:
        """Run sf and return stdout; see module docstring for failures."""
        command = [self.sf_bin, *args]
        logger.debug(f"Executing: {' '.join(command[:4])} ...")

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=False,  # sf prints JSON errors on stdout with a non-zero exit
            )
        except FileNotFoundError as e:
            raise SfCommandError(f"sf CLI not found: {self.sf_bin}") from e

        return self._stdout_or_raise(result.returncode, result.stdout, result.stderr)

    async def _run_async(self, args: list[str]) -> str:
        command = [self.sf_bin, *args]
        logger.debug(f"Executing async: {' '.join(command[:4])} ...")

        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=MAX_OUTPUT_BYTES,
            )
        except FileNotFoundError as e:
            raise SfCommandError(f"sf CLI not found: {self.sf_bin}") from e

        stdout, stderr = await proc.communicate()
        return self._stdout_or_raise(
            proc.returncode,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    @staticmethod
    def _stdout_or_raise(returncode: Optional[int], stdout: str, stderr: str) -> str:
        if returncode == 0 or (stdout and stdout.strip()):
            return stdout
        message = clean_stderr(stderr) or f"sf exited with code {returncode}"
        raise SfCommandError(message)

    # -------------------------------------------------------------------------
    # Query
    # -------------------------------------------------------------------------

    @staticmethod
    def _records(output: str) -> list[dict[str, Any]]:
        try:
            parsed = json.loads(output)
        except ValueError as e:
            raise SfCommandError(f"Unparseable query output: {output.strip()[:500]}") from e

        if not isinstance(parsed, dict) or parsed.get("status") != 0:
            message = parsed.get("message") if isinstance(parsed, dict) else None
            raise RemoteQueryError(message or "Tooling API query failed")

        return (parsed.get("result") or {}).get("records") or []

    def query(self, soql: str) -> list[dict[str, Any]]:
        """
        Run a Tooling SOQL query.

        Returns:
            Query records (possibly empty)

        Raises:
            RemoteQueryError: If the query reports a non-success status
            SfCommandError: If sf could not be run
        """
        return self._records(self._run(self.query_args(soql)))

    async def query_async(self, soql: str) -> list[dict[str, Any]]:
        return self._records(await self._run_async(self.query_args(soql)))

    # -------------------------------------------------------------------------
    # REST
    # -------------------------------------------------------------------------

    def call(self, resource_path: str, method: str = "GET", body: Optional[dict[str, Any]] = None) -> ToolingResponse:
        """Run a REST call and return the typed response without raising on error payloads."""
        with self._staged_body(body) as body_file:
            output = self._run(self.request_args(resource_path, method, body_file))
        return parse_response(output)

    async def call_async(
        self, resource_path: str, method: str = "GET", body: Optional[dict[str, Any]] = None
    ) -> ToolingResponse:
        with self._staged_body(body) as body_file:
            output = await self._run_async(self.request_args(resource_path, method, body_file))
        return parse_response(output)

    def request(self, resource_path: str, method: str = "GET", body: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Create, read or delete a Tooling resource.

        Args:
            resource_path: Path below the tooling root, e.g. "/sobjects/MetadataContainer"
            method: HTTP method
            body: JSON body for create calls

        Returns:
            Response record ({} for empty responses)

        Raises:
            RemoteApiError: If the org answered with an error payload
            SfCommandError: If sf could not be run
        """
        return self.call(resource_path, method, body).raise_for_error()

    async def request_async(
        self, resource_path: str, method: str = "GET", body: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        return (await self.call_async(resource_path, method, body)).raise_for_error()
