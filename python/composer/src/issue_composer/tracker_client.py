"""HTTP client for the issue tracker's draft and issue API.

Endpoints used:
- GET  /api/users/me/drafts/:id
- POST /api/users/me/drafts/:id
- POST /api/issues?draftId=:id
- POST /api/issues/:id/attachments
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Any

import aiofiles
import httpx

from .models import CreatedIssue, Draft

logger = logging.getLogger(__name__)

DRAFT_FIELDS = (
    "id,summary,description,"
    "project(id,shortName),"
    "fields($type,id,name,value($type,id,name,login,text),projectCustomField(id,field(id,name))),"
    "attachments(id,name,url)"
)
CREATED_ISSUE_FIELDS = "id,idReadable,summary"

ENTITY_NOT_FOUND_MARKER = "Can't find entity with id"


class ApiError(Exception):
    """Failed request against the tracker."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_description: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_description = error_description

    def is_entity_not_found(self) -> bool:
        """True when the tracker could not resolve a referenced entity."""
        return bool(self.error_description) and ENTITY_NOT_FOUND_MARKER in self.error_description

    def __str__(self) -> str:
        if self.error_description:
            return f"{self.message}: {self.error_description}"
        return self.message


def _resolve_error(response: httpx.Response, message: str) -> ApiError:
    description = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        description = body.get("error_description") or body.get("error")
    if description is None and response.text:
        description = response.text[:200]
    return ApiError(message, status_code=response.status_code, error_description=description)


class TokenAuth:
    """Permanent-token credentials attached to every request."""

    def __init__(self, token: str | None, current_user: dict[str, Any] | None = None):
        self.token = token
        self.current_user = current_user or {}

    @property
    def is_logged_in(self) -> bool:
        return self.token is not None

    def headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def log_out(self) -> None:
        """Forget the token; later requests go out unauthenticated."""
        self.token = None
        self.current_user = {}


class TrackerClient:
    """Client for drafts, issue creation and attachments."""

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        auth: TokenAuth | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            base_url: Tracker root URL
            auth: Credentials added to each request
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.auth = auth or TokenAuth(None)
        self.client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def _request(self, method: str, path: str, message: str, **kwargs) -> httpx.Response:
        headers = {"Accept": "application/json", **self.auth.headers()}
        try:
            response = await self.client.request(
                method, f"{self.base_url}{path}", headers=headers, **kwargs
            )
        except httpx.RequestError as e:
            raise ApiError(message, error_description=str(e)) from e

        if response.status_code >= 400:
            raise _resolve_error(response, message)
        return response

    async def load_draft(self, draft_id: str) -> Draft:
        """Fetch a draft by id.

        Raises:
            ApiError: Draft does not exist or cannot be read
        """
        response = await self._request(
            "GET",
            f"/api/users/me/drafts/{draft_id}",
            "Cannot load issue draft",
            params={"fields": DRAFT_FIELDS},
        )
        return Draft.from_dict(response.json())

    async def save_draft(self, draft: Draft, omit_fields: bool = False) -> Draft:
        """Create or update the server-side draft.

        Args:
            draft: Local draft snapshot
            omit_fields: Leave custom fields out of the payload

        Returns:
            The server's representation of the draft
        """
        response = await self._request(
            "POST",
            f"/api/users/me/drafts/{draft.id or ''}",
            "Cannot update issue draft",
            params={"fields": DRAFT_FIELDS},
            json=draft.to_payload(omit_fields=omit_fields),
        )
        return Draft.from_dict(response.json())

    async def create_issue(self, draft: Draft) -> CreatedIssue:
        """Turn a draft into an issue."""
        response = await self._request(
            "POST",
            "/api/issues",
            "Cannot create issue",
            params={"draftId": draft.id or "", "fields": CREATED_ISSUE_FIELDS},
            json=draft.to_payload(),
        )
        return CreatedIssue.from_dict(response.json())

    async def attach_file(self, issue_id: str | None, file_url: str, file_name: str) -> None:
        """Upload a file to a draft or issue.

        Args:
            issue_id: Draft or issue id
            file_url: Local file path (``file://`` prefix allowed)
            file_name: Name shown in the tracker
        """
        if not issue_id:
            raise ApiError("Cannot attach file", error_description="Draft has not been saved yet")

        path = Path(file_url.removeprefix("file://"))
        try:
            async with aiofiles.open(path, "rb") as f:
                content = await f.read()
        except OSError as e:
            raise ApiError("Cannot attach file", error_description=str(e)) from e

        content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        await self._request(
            "POST",
            f"/api/issues/{issue_id}/attachments",
            "Cannot attach file",
            files={"file": (file_name, content, content_type)},
        )
        logger.debug(f"Attached {file_name} to {issue_id}")
