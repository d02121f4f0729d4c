"""
Unit tests for the Jira client (description write-back).
"""
from unittest.mock import Mock, patch

import jwt
import pytest
import requests

from services.jira_client import (
    JiraClient,
    JiraClientError,
    build_description_document,
    extract_adf_text,
    issue_path,
)
from services.credential_store import TenantCredentials
from conftest import TENANT


def _response(status_code, body=""):
    response = Mock()
    response.status_code = status_code
    response.text = body
    response.content = body.encode("utf-8")
    return response


def test_description_document_shape():
    assert build_description_document("Fixed") == {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Fixed"}]}],
    }


@pytest.mark.parametrize("text", [
    "Fixed",
    "line one\nline two\n\nline four",
    '{\n  "Issue Type": "Bug",\n  "Priority": "Critical"\n}',
    "unicode ✅ — ünïcödé & <tags>",
    "   leading and trailing spaces   ",
])
def test_description_document_round_trip(text):
    """The text run comes back out exactly as it went in."""
    document = build_description_document(text)

    assert document["content"][0]["content"][0]["text"] == text
    assert extract_adf_text(document) == text


def test_empty_description_gives_empty_paragraph():
    document = build_description_document("")
    assert document["content"] == [{"type": "paragraph", "content": []}]
    assert extract_adf_text(document) == ""


def test_extract_adf_text_joins_blocks_with_newlines():
    document = {
        "type": "doc",
        "version": 1,
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": "Hello "}, {"type": "text", "text": "world"}]},
            {"type": "bulletList", "content": [
                {"type": "listItem", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "item"}]}]}
            ]},
            {"type": "paragraph", "content": [{"type": "text", "text": "a"}, {"type": "hardBreak"}, {"type": "text", "text": "b"}]},
        ],
    }
    assert extract_adf_text(document) == "Hello world\nitem\na\nb"
    assert extract_adf_text("plain v2 text") == "plain v2 text"
    assert extract_adf_text(None) == ""


def test_update_description_puts_signed_request():
    client = JiraClient(TENANT, "aava-jira-connect")

    with patch("services.jira_client.requests.request", return_value=_response(204)) as mock_request:
        client.update_description("PROJ-1", "Fixed")

    mock_request.assert_called_once()
    args, kwargs = mock_request.call_args
    assert args == ("PUT", "https://example.atlassian.net/rest/api/3/issue/PROJ-1")
    assert kwargs["json"]["fields"]["description"] == build_description_document("Fixed")
    assert kwargs["timeout"] is None
    assert kwargs["headers"]["Authorization"].startswith("JWT ")
    claims = jwt.decode(kwargs["headers"]["Authorization"][4:], TENANT.shared_secret, algorithms=["HS256"])
    assert claims["iss"] == "aava-jira-connect"


@pytest.mark.parametrize("status_code", [400, 401, 403, 404, 500])
def test_update_description_non_2xx_surfaces_body(status_code):
    body = '{"errorMessages":[],"errors":{"description":"Operation value must be an Atlassian Document"}}'
    client = JiraClient(TENANT, "aava-jira-connect")

    with patch("services.jira_client.requests.request", return_value=_response(status_code, body)):
        with pytest.raises(JiraClientError) as exc_info:
            client.update_description("PROJ-1", "Fixed")

    assert str(exc_info.value) == body


def test_update_description_empty_error_body_reports_status():
    client = JiraClient(TENANT, "aava-jira-connect")

    with patch("services.jira_client.requests.request", return_value=_response(502)):
        with pytest.raises(JiraClientError, match="status 502"):
            client.update_description("PROJ-1", "Fixed")


def test_update_description_transport_error():
    client = JiraClient(TENANT, "aava-jira-connect")

    with patch("services.jira_client.requests.request", side_effect=requests.exceptions.ConnectionError("connection refused")):
        with pytest.raises(JiraClientError, match="connection refused"):
            client.update_description("PROJ-1", "Fixed")


def test_base_url_with_context_path():
    tenant = TenantCredentials(clientKey="ctx", baseUrl="https://jira.example.com/jira/", sharedSecret="ctx-secret-0123456789abcdef012345")
    client = JiraClient(tenant, "aava-jira-connect")

    with patch("services.jira_client.requests.request", return_value=_response(204)) as mock_request:
        client.update_description("CTX-3", "Done")

    assert mock_request.call_args.args[1] == "https://jira.example.com/jira/rest/api/3/issue/CTX-3"


@pytest.mark.parametrize("issue_key,expected", [
    ("PROJ-1", "/rest/api/3/issue/PROJ-1"),
    ("10042", "/rest/api/3/issue/10042"),
    ("PROJ-1/comment", "/rest/api/3/issue/PROJ-1%2Fcomment"),
    ("../myself", "/rest/api/3/issue/..%2Fmyself"),
    ("A-1?expand=x", "/rest/api/3/issue/A-1%3Fexpand%3Dx"),
])
def test_issue_path_encodes_key_as_one_segment(issue_key, expected):
    assert issue_path(issue_key) == expected


@pytest.mark.parametrize("issue_key", ["", "  ", ".", ".."])
def test_issue_path_rejects_unusable_keys(issue_key):
    with pytest.raises(JiraClientError, match="Invalid issue key"):
        issue_path(issue_key)
