"""
Jira client for the Connect app.

Requests are made on behalf of one installed tenant and authenticated with a
Connect JWT signed by that tenant's shared secret.
"""
from typing import Any, Dict, Optional
from urllib.parse import quote
import logging

import requests

from services.connect_jwt import create_token
from services.credential_store import TenantCredentials

logger = logging.getLogger(__name__)


class JiraClientError(Exception):
    """Raised when Jira API calls fail. The message is the upstream body when there is one."""
    pass


def build_description_document(text: str) -> Dict[str, Any]:
    """
    Wrap plain text in a single-paragraph Atlassian Document Format document.

    The text is kept as one text run: no formatting, no splitting. ADF does not
    allow empty text nodes, so empty text gives an empty paragraph.
    """
    paragraph: Dict[str, Any] = {"type": "paragraph", "content": []}
    if text:
        paragraph["content"].append({"type": "text", "text": text})
    return {
        "type": "doc",
        "version": 1,
        "content": [paragraph],
    }


def extract_adf_text(adf_content: Any) -> str:
    """
    Extract plain text from Atlassian Document Format (ADF).

    Text runs inside a block are concatenated; top-level blocks are joined
    with newlines. Plain strings (Jira v2 descriptions) are returned as-is.
    """
    if not adf_content:
        return ""
    if isinstance(adf_content, str):
        return adf_content
    if not isinstance(adf_content, dict):
        return ""

    def extract_node(node: Dict[str, Any]) -> str:
        if node.get("type") == "text":
            return node.get("text", "")
        if node.get("type") == "hardBreak":
            return "\n"
        return "".join(extract_node(child) for child in node.get("content", []))

    return "\n".join(extract_node(block) for block in adf_content.get("content", []))


def issue_path(issue_key: str) -> str:
    """
    REST path of one issue, with the key encoded as a single path segment.

    Raises:
        JiraClientError: If the key is empty or a dot segment
    """
    key = (issue_key or "").strip()
    # "." and ".." survive quoting and are collapsed by URL normalization
    if not key or key in (".", ".."):
        raise JiraClientError(f"Invalid issue key: {issue_key!r}")
    return f"/rest/api/3/issue/{quote(key, safe='')}"


class JiraClient:
    """Client for one tenant's Jira REST API."""

    def __init__(self, tenant: TenantCredentials, app_key: str, timeout: Optional[float] = None):
        """
        Initialize Jira client.

        Args:
            tenant: Installed tenant (base URL and shared secret)
            app_key: Connect app key, used as the JWT issuer
            timeout: Optional request timeout in seconds (transport default when None)
        """
        self.jira_url = tenant.base_url.rstrip("/")
        self.client_key = tenant.client_key
        self.shared_secret = tenant.shared_secret
        self.app_key = app_key
        self.timeout = timeout

        if not self.jira_url:
            raise JiraClientError("Tenant base URL cannot be empty")
        if not self.shared_secret:
            raise JiraClientError("Tenant shared secret cannot be empty")

    def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make a JWT-authenticated request to the Jira API.

        Args:
            endpoint: API endpoint (e.g., "/rest/api/3/issue/KEY-123")
            method: HTTP method (GET, PUT, POST)
            data: Optional JSON request body

        Returns:
            JSON response from Jira API ({} for empty responses such as 204)

        Raises:
            JiraClientError: On transport failure or any non-2xx status
        """
        url = f"{self.jira_url}{endpoint}"
        token = create_token(self.app_key, self.shared_secret, method, url, base_url=self.jira_url)
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"JWT {token}",
        }

        try:
            response = requests.request(method, url, headers=headers, json=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise JiraClientError(f"Jira API request failed: {str(e)}")

        if not 200 <= response.status_code < 300:
            logger.error(
                f"Jira {method} {endpoint} failed with status {response.status_code} (tenant={self.client_key})"
            )
            raise JiraClientError(response.text or f"Jira API returned status {response.status_code}")

        if response.content:
            try:
                return response.json()
            except ValueError:
                return {}
        return {}

    def update_description(self, issue_key: str, new_text: str) -> None:
        """
        Overwrite an issue's description with plain text.

        The whole description is replaced; there is no merge with the existing
        content and no version check, so the last writer wins.

        Args:
            issue_key: Jira issue key (e.g., "PROJ-1")
            new_text: New description text

        Raises:
            JiraClientError: If the update fails
        """
        payload = {"fields": {"description": build_description_document(new_text)}}
        self._make_request(issue_path(issue_key), method="PUT", data=payload)
        logger.info(f"Updated description of {issue_key} (tenant={self.client_key})")

    def get_description(self, issue_key: str) -> str:
        """
        Fetch an issue's current description as plain text.

        Args:
            issue_key: Jira issue key (e.g., "PROJ-1")

        Raises:
            JiraClientError: If the fetch fails
        """
        issue = self._make_request(f"{issue_path(issue_key)}?fields=description")
        return extract_adf_text(issue.get("fields", {}).get("description"))
