"""Tests for ToolingResponse classification."""

import json

import pytest

from apexcompile.errors import RemoteApiError, SfCommandError
from apexcompile.tooling.response import ResponseKind, ToolingResponse, parse_response


def test_record():
    response = parse_response(json.dumps({"id": "1dc1", "success": True, "errors": []}))
    assert response.kind is ResponseKind.RECORD
    assert response.ok
    assert response.id == "1dc1"
    assert response.raise_for_error() == {"id": "1dc1", "success": True, "errors": []}


@pytest.mark.parametrize("output", [None, "", "  \n"])
def test_empty(output):
    response = parse_response(output)
    assert response.kind is ResponseKind.EMPTY
    assert response.raise_for_error() == {}


def test_error_payload():
    output = json.dumps([{"errorCode": "INVALID_CROSS_REFERENCE_KEY", "message": "invalid cross reference id"}])
    response = parse_response(output)
    assert response.kind is ResponseKind.ERROR
    assert not response.ok
    assert response.error_code == "INVALID_CROSS_REFERENCE_KEY"

    with pytest.raises(RemoteApiError) as exc_info:
        response.raise_for_error()
    assert exc_info.value.code == "INVALID_CROSS_REFERENCE_KEY"
    assert str(exc_info.value) == "INVALID_CROSS_REFERENCE_KEY: invalid cross reference id"


def test_list_without_error_code_is_a_record():
    response = parse_response(json.dumps([{"Id": "a"}]))
    assert response.kind is ResponseKind.RECORD
    assert response.record == {"records": [{"Id": "a"}]}


def test_unparseable_output():
    with pytest.raises(SfCommandError, match="Unparseable"):
        parse_response("<html>Bad gateway</html>")


def test_id_accepts_either_case():
    assert ToolingResponse(kind=ResponseKind.RECORD, record={"Id": "x"}).id == "x"
