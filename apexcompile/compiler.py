"""ContainerCompiler - check-only compile of every class and trigger in an org.

This is the programmatic equivalent of Setup -> Apex Classes ->
"Compile all classes", built on the Tooling API container flow:

1. Query classes and triggers (with Body) scoped to the project namespace
2. Create a MetadataContainer with a run-unique name
3. Stage one ApexClassMember / ApexTriggerMember per unit, in bounded batches
4. Submit a ContainerAsyncRequest with IsCheckOnly = true
5. Poll the request until it reaches a terminal state
6. On failure, collect compiler diagnostics
7. Delete the container (best effort)

Usage:
    from apexcompile.compiler import ContainerCompiler
    from apexcompile.tooling import ToolingClient

    result = asyncio.run(ContainerCompiler(ToolingClient("my-org")).run())
    sys.exit(result.exit_code)

An empty inventory skips steps 2-7. Any error raised while staging,
submitting or polling propagates to the caller after step 7 has run.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Optional

from apexcompile.batch import DEFAULT_CONCURRENCY, run_in_batches
from apexcompile.config import DEFAULT_POLL_INTERVAL
from apexcompile.diagnostics import format_compiler_errors
from apexcompile.errors import ApexCompileError, SfCommandError
from apexcompile.inventory import Inventory, fetch_inventory_async
from apexcompile.progress import Reporter
from apexcompile.schemas import (
    AsyncCompileRequest,
    CompilationUnit,
    CompileOutcome,
    CompileResult,
    ContainerMember,
    LifecycleState,
    MetadataContainer,
    container_name,
)
from apexcompile.tooling.client import ToolingClient

logger = logging.getLogger(__name__)

NO_DETAILS_NOTICE = "No error details available. Check Setup → Apex Classes in the org."

CONTAINER_PATH = "/sobjects/MetadataContainer"
ASYNC_REQUEST_PATH = "/sobjects/ContainerAsyncRequest"


class ContainerCompiler:
    """Drives one compile run through the container lifecycle."""

    def __init__(
        self,
        client: ToolingClient,
        namespace: Optional[str] = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        reporter: Optional[Reporter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Args:
            client: Tooling API client for the target org
            namespace: Project namespace prefix, None for unnamespaced orgs
            concurrency: Members staged per batch
            poll_interval: Seconds between async request reads
            reporter: Progress sink (default: silent)
            sleep: Awaitable used between polls
            now: Clock used to name the container
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.client = client
        self.namespace = namespace
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.reporter = reporter or Reporter()
        self._sleep = sleep
        self._now = now

    def _enter(self, result: CompileResult, state: LifecycleState) -> None:
        result.transitions.append(state)
        logger.debug(
            f"Lifecycle: {state.value}",
            extra={"event": "lifecycle", "metadata": {"state": state.value, "container_id": result.container_id}},
        )

    async def run(self) -> CompileResult:
        """
        Run the full compile.

        Returns:
            CompileResult; exit_code is 0 for Completed or an empty inventory

        Raises:
            RemoteQueryError: If the inventory query fails
            RemoteApiError: If creating the container, a member or the request fails
            SfCommandError: If the sf CLI can't be run or a create reply has no Id
        """
        if self.namespace:
            self.reporter.namespace(self.namespace)

        inventory = await fetch_inventory_async(self.client, self.namespace)
        self.reporter.inventory(len(inventory.classes), len(inventory.triggers))

        result = CompileResult(
            outcome=CompileOutcome.UNSUCCESSFUL,
            class_count=len(inventory.classes),
            trigger_count=len(inventory.triggers),
        )

        if inventory.is_empty:
            logger.info("Nothing to compile")
            result.outcome = CompileOutcome.NOTHING_TO_COMPILE
            self._enter(result, LifecycleState.SKIPPED)
            return result

        container = await self._create_container()
        result.container_id = container.id
        self._enter(result, LifecycleState.CREATED)

        try:
            await self._populate(container, inventory, result)
            request = await self._submit(container, result)
            final = await self._poll(request, result)
            await self._conclude(final, result)
        finally:
            await self._delete_container(container, result)

        return result

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    async def _create(self, path: str, body: dict) -> str:
        """POST a new record and return its Id."""
        response = await self.client.call_async(path, "POST", body)
        response.raise_for_error()
        if not response.id:
            sobject = path.rsplit("/", 1)[-1]
            raise SfCommandError(f"{sobject} create returned no id")
        return response.id

    async def _create_container(self) -> MetadataContainer:
        name = container_name(self._now())
        container = MetadataContainer(id=await self._create(CONTAINER_PATH, {"Name": name}), name=name)
        logger.info(
            f"Created container {container.name} ({container.id})",
            extra={"event": "container_created", "metadata": {"container_id": container.id, "name": name}},
        )
        return container

    async def _populate(self, container: MetadataContainer, inventory: Inventory, result: CompileResult) -> None:
        self._enter(result, LifecycleState.POPULATING)

        async def stage(unit: CompilationUnit) -> dict:
            member = ContainerMember.for_unit(container.id, unit)
            record = await self.client.request_async(member.resource_path, "POST", member.to_payload())
            result.members_staged += 1
            return record

        await run_in_batches(
            inventory.units,
            stage,
            concurrency=self.concurrency,
            on_settled=self.reporter.staging,
        )
        self.reporter.staged(inventory.total)
        logger.info(
            f"Staged {result.members_staged} members",
            extra={"event": "members_staged", "metadata": {"count": result.members_staged}},
        )

    async def _submit(self, container: MetadataContainer, result: CompileResult) -> AsyncCompileRequest:
        self.reporter.compiling()
        request_id = await self._create(ASYNC_REQUEST_PATH, AsyncCompileRequest.create_payload(container.id))
        request = AsyncCompileRequest(id=request_id, container_id=container.id)
        result.request_id = request.id
        self._enter(result, LifecycleState.SUBMITTED)
        logger.info(
            f"Submitted check-only compile request {request.id}",
            extra={"event": "request_submitted", "metadata": {"request_id": request.id}},
        )
        return request

    async def _poll(self, request: AsyncCompileRequest, result: CompileResult) -> AsyncCompileRequest:
        """Read the request one call at a time until it is terminal."""
        self._enter(result, LifecycleState.POLLING)
        tick = 0

        while True:
            record = await self.client.request_async(f"{ASYNC_REQUEST_PATH}/{request.id}")
            current = AsyncCompileRequest.from_record(record, request.id, request.container_id)

            if current.is_terminal:
                return current

            if current.state is not None and current.parsed_state is None:
                logger.debug(f"Unrecognized request state {current.state!r}; still polling")

            tick += 1
            self.reporter.polling(current.state, tick)
            await self._sleep(self.poll_interval)

    async def _conclude(self, request: AsyncCompileRequest, result: CompileResult) -> None:
        state = request.parsed_state
        result.request_state = request.state
        self._enter(result, LifecycleState.from_request_state(state))

        if state.is_successful:
            result.outcome = CompileOutcome.SUCCEEDED
            logger.info(
                f"Compiled {result.class_count} classes and {result.trigger_count} triggers",
                extra={"event": "compile_completed", "metadata": {"total": result.total}},
            )
            return

        result.outcome = CompileOutcome.UNSUCCESSFUL
        result.diagnostics = await self._diagnostics(request)
        result.error_message = request.error_message or None
        logger.error(
            f"Compilation {request.state}",
            extra={
                "event": "compile_unsuccessful",
                "metadata": {"state": request.state, "has_diagnostics": result.diagnostics is not None},
            },
        )

    async def _diagnostics(self, request: AsyncCompileRequest) -> Optional[str]:
        """Compiler errors from the terminal read, else from a query by Id."""
        formatted = format_compiler_errors(request.compiler_errors)
        if formatted:
            return formatted

        # REST reads sometimes omit CompilerErrors; SOQL returns it
        try:
            records = await self.client.query_async(
                f"SELECT CompilerErrors FROM ContainerAsyncRequest WHERE Id = '{request.id}'"
            )
        except ApexCompileError as e:
            logger.debug(f"CompilerErrors fallback query failed: {e}")
            return None

        if not records:
            return None
        return format_compiler_errors(records[0].get("CompilerErrors"))

    async def _delete_container(self, container: MetadataContainer, result: CompileResult) -> None:
        try:
            await self.client.request_async(f"{CONTAINER_PATH}/{container.id}", "DELETE")
        except Exception as e:
            # The org garbage-collects abandoned containers
            logger.debug(f"Could not delete container {container.id}: {e}")
            return
        self._enter(result, LifecycleState.DELETED)


def failure_messages(result: CompileResult) -> list[str]:
    """Lines to show for an unsuccessful run, diagnostics first."""
    messages = []
    if result.diagnostics:
        messages.append(f"Compilation Errors found:\n{result.diagnostics}")
    if result.error_message:
        messages.append(f"Error: {result.error_message}")
    if not messages:
        messages.append(NO_DETAILS_NOTICE)
    return messages


def compile_all(
    client: ToolingClient,
    namespace: Optional[str] = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    reporter: Optional[Reporter] = None,
) -> CompileResult:
    """Blocking entry point: run a ContainerCompiler on a fresh event loop."""
    compiler = ContainerCompiler(
        client,
        namespace=namespace,
        concurrency=concurrency,
        poll_interval=poll_interval,
        reporter=reporter,
    )
    return asyncio.run(compiler.run())
