"""Tests for console progress reporting."""

import io

import pytest
from rich.console import Console

from apexcompile.compiler import ContainerCompiler
from apexcompile.errors import ConfigError
from apexcompile.progress import ConsoleReporter
from fakes import no_sleep


def make_reporter():
    buffer = io.StringIO()
    return ConsoleReporter(Console(file=buffer, width=120, color_system=None)), buffer


def test_namespace_is_printed_literally():
    reporter, buffer = make_reporter()
    reporter.namespace("[/x]")
    assert "Using namespace: [/x]" in buffer.getvalue()


def test_staging_progress():
    reporter, buffer = make_reporter()
    reporter.staging(3, 12)
    reporter.staged(12)
    output = buffer.getvalue()
    assert "[3/12] Adding members..." in output
    assert "[12/12] Added all members" in output


@pytest.mark.asyncio
async def test_malformed_namespace_is_a_config_error(fake_client):
    reporter, buffer = make_reporter()
    client = fake_client()
    compiler = ContainerCompiler(client, namespace="[/x]", reporter=reporter, sleep=no_sleep)

    with pytest.raises(ConfigError, match="Invalid namespace prefix"):
        await compiler.run()

    assert client.queries == []
    assert "[/x]" in buffer.getvalue()
