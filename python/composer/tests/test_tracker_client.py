import json

import httpx
import pytest

from issue_composer.models import CustomFieldValue, Draft, Project
from issue_composer.tracker_client import ApiError, TokenAuth, TrackerClient


class RequestRecorder:
    def __init__(self):
        self.requests: list[httpx.Request] = []

    def record(self, request: httpx.Request) -> None:
        self.requests.append(request)


def make_client(handler, token: str | None = "perm:abc") -> TrackerClient:
    client = TrackerClient(base_url="http://tracker.test/", auth=TokenAuth(token))
    client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=10)
    return client


@pytest.mark.asyncio
async def test_load_draft_parses_response():
    recorder = RequestRecorder()

    def handler(request: httpx.Request) -> httpx.Response:
        recorder.record(request)
        assert request.url.path == "/api/users/me/drafts/d1"
        assert request.headers["Authorization"] == "Bearer perm:abc"
        return httpx.Response(200, json={
            "id": "d1",
            "summary": "Bug",
            "project": {"id": "42", "shortName": "DEMO"},
            "fields": [{"$type": "SingleEnumIssueCustomField", "id": "f1", "name": "Priority", "value": {"name": "Major"}}],
            "attachments": [{"name": "a.png", "url": "/files/a.png"}],
        })

    client = make_client(handler)
    draft = await client.load_draft("d1")

    assert draft.id == "d1"
    assert draft.project == Project(id="42", short_name="DEMO")
    assert draft.fields[0].name == "Priority"
    assert draft.fields[0].raw["$type"] == "SingleEnumIssueCustomField"
    assert draft.attachments[0].name == "a.png"
    assert "fields" in recorder.requests[0].url.params

    await client.close()


@pytest.mark.asyncio
async def test_load_missing_draft_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "Not Found", "error_description": "Entity not found"})

    client = make_client(handler)
    with pytest.raises(ApiError) as exc_info:
        await client.load_draft("gone")

    assert exc_info.value.status_code == 404
    assert exc_info.value.error_description == "Entity not found"
    await client.close()


@pytest.mark.asyncio
async def test_save_draft_omits_fields_when_requested():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content.decode())
        bodies.append(body)
        assert request.url.path == "/api/users/me/drafts/"
        return httpx.Response(200, json={"id": "d1", "project": {"id": "42"}, "fields": []})

    client = make_client(handler)
    draft = Draft(
        summary="Bug",
        project=Project(id="42"),
        fields=(CustomFieldValue(id="f1", name="Priority", value="Major"),),
    )

    saved = await client.save_draft(draft, omit_fields=True)
    await client.save_draft(draft)

    assert "fields" not in bodies[0]
    assert bodies[1]["fields"][0]["value"] == "Major"
    assert bodies[0]["project"] == {"id": "42"}
    assert saved.id == "d1"
    await client.close()


@pytest.mark.asyncio
async def test_project_not_found_is_recognized():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={
            "error": "Not Found",
            "error_description": "Can't find entity with id 0-42",
        })

    client = make_client(handler)
    with pytest.raises(ApiError) as exc_info:
        await client.save_draft(Draft(id="d1", project=Project(id="0-42")))

    assert exc_info.value.is_entity_not_found()
    await client.close()


@pytest.mark.asyncio
async def test_transport_error_becomes_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(ApiError) as exc_info:
        await client.save_draft(Draft(project=Project(id="42")))

    assert exc_info.value.status_code is None
    assert not exc_info.value.is_entity_not_found()
    await client.close()


@pytest.mark.asyncio
async def test_create_issue_passes_draft_id():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/issues"
        assert request.url.params["draftId"] == "d1"
        return httpx.Response(200, json={"id": "2-1", "idReadable": "DEMO-1", "summary": "Bug"})

    client = make_client(handler)
    created = await client.create_issue(Draft(id="d1", summary="Bug", project=Project(id="42")))

    assert created.id == "2-1"
    assert created.id_readable == "DEMO-1"
    await client.close()


@pytest.mark.asyncio
async def test_attach_file_uploads_multipart(tmp_path):
    photo = tmp_path / "photo.png"
    photo.write_bytes(b"\x89PNG-bytes")
    seen: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/issues/d1/attachments"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        seen.append(request.content)
        return httpx.Response(200, json=[{"id": "att-1"}])

    client = make_client(handler)
    await client.attach_file("d1", f"file://{photo}", "photo.png")

    assert b"\x89PNG-bytes" in seen[0]
    assert b'filename="photo.png"' in seen[0]
    await client.close()


@pytest.mark.asyncio
async def test_attach_file_requires_saved_draft(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"Unexpected request: {request.method} {request.url}")

    client = make_client(handler)
    with pytest.raises(ApiError):
        await client.attach_file(None, str(tmp_path / "x.png"), "x.png")
    with pytest.raises(ApiError):
        await client.attach_file("d1", str(tmp_path / "missing.png"), "missing.png")
    await client.close()


def test_log_out_drops_credentials():
    auth = TokenAuth("perm:abc", current_user={"login": "root"})
    assert auth.is_logged_in

    auth.log_out()

    assert auth.headers() == {}
    assert auth.current_user == {}
    assert not auth.is_logged_in
