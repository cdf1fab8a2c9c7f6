import uuid
from datetime import datetime, timedelta, timezone

import httpx
from fastapi.testclient import TestClient

from copilot_chat.api.main import create_app
from copilot_chat.core.security import DEFAULT_USER_ID, AzureAdAuthenticator
from copilot_chat.core.settings import AzureAdOptions
from copilot_chat.models.storage import GLOBAL_CHAT_ID, ChatMessage, ChatParticipant, ChatSession, MemorySource
from copilot_chat.services.container import ChatServices, build_chat_store, build_ocr_engine
from tests.helpers import make_settings, run


def _create_chat(client, title="Trip planning"):
    resp = client.post("/chatSession/create", json={"title": title})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Healthy"
    assert resp.headers["X-Correlation-ID"]


def test_create_chat_session_adds_bot_message_and_participant(client, services, settings):
    body = _create_chat(client)
    chat = body["chatSession"]
    greeting = body["initialBotMessage"]

    assert chat["title"] == "Trip planning"
    assert chat["systemDescription"] == settings.PROMPTS.system_description
    assert greeting["chatId"] == chat["id"]
    assert greeting["authorRole"] == "Bot"
    assert greeting["content"] == settings.PROMPTS.initial_bot_message
    assert greeting["tokenUsage"]["responseCompletion"] == 0

    repos = services.repositories
    assert run(repos.participants.is_user_in_chat(DEFAULT_USER_ID, chat["id"]))
    assert len(run(repos.messages.find_by_chat_id(chat["id"]))) == 1


def test_create_location_header_points_at_get_chat(client):
    resp = client.post("/chatSession/create", json={"title": "x"})
    chat_id = resp.json()["chatSession"]["id"]
    assert resp.headers["Location"].endswith(f"/chatSession/getChat/{chat_id}")


def test_create_without_title_is_bad_request(client):
    resp = client.post("/chatSession/create", json={})
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Chat session parameters cannot be null."


def test_get_chat_by_id(client):
    chat_id = _create_chat(client)["chatSession"]["id"]
    resp = client.get(f"/chatSession/getChat/{chat_id}")
    assert resp.status_code == 200
    assert resp.json()["id"] == chat_id


def test_get_unknown_chat_is_not_found(client):
    resp = client.get(f"/chatSession/getChat/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "http_error"


def test_get_chat_with_malformed_id_is_validation_error(client):
    resp = client.get("/chatSession/getChat/not-a-guid")
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "validation_error"


def test_get_chat_of_other_users_is_forbidden(client, services):
    chat = ChatSession(title="private")
    repos = services.repositories
    run(repos.sessions.create(chat))
    run(repos.participants.create(ChatParticipant(user_id="someone-else", chat_id=chat.id)))

    assert client.get(f"/chatSession/getChat/{chat.id}").status_code == 403
    assert client.get(f"/chatSession/getChatMessages/{chat.id}").status_code == 403
    assert client.get(f"/chatSession/{chat.id}/sources").status_code == 403


def test_get_all_chats_lists_only_the_callers_chats(client, services):
    first = _create_chat(client, "one")["chatSession"]["id"]
    second = _create_chat(client, "two")["chatSession"]["id"]
    run(services.repositories.sessions.create(ChatSession(title="not mine")))
    # Membership to a chat that no longer exists is skipped.
    run(services.repositories.participants.create(ChatParticipant(user_id=DEFAULT_USER_ID, chat_id="gone")))

    resp = client.get(f"/chatSession/getAllChats/{DEFAULT_USER_ID}")
    assert resp.status_code == 200
    assert sorted(c["id"] for c in resp.json()) == sorted([first, second])


def test_get_chat_messages_pages_newest_first(client, services):
    chat_id = _create_chat(client)["chatSession"]["id"]
    start = datetime.now(timezone.utc) + timedelta(minutes=1)
    for i in range(4):
        run(services.repositories.messages.create(ChatMessage(
            id=f"m{i}", chat_id=chat_id, user_id=DEFAULT_USER_ID, user_name="Default User",
            content=f"message {i}", timestamp=start + timedelta(minutes=i),
        )))

    everything = client.get(f"/chatSession/getChatMessages/{chat_id}").json()
    assert [m["id"] for m in everything[:4]] == ["m3", "m2", "m1", "m0"]
    assert everything[4]["authorRole"] == "Bot"

    page = client.get(f"/chatSession/getChatMessages/{chat_id}", params={"startIdx": 1, "count": 2}).json()
    assert [m["id"] for m in page] == ["m2", "m1"]

    rest = client.get(f"/chatSession/getChatMessages/{chat_id}", params={"startIdx": 3, "count": -1}).json()
    assert [m["id"] for m in rest][:1] == ["m0"]
    assert len(rest) == 2

    assert client.get(f"/chatSession/getChatMessages/{chat_id}", params={"count": 0}).json() == []


def test_get_chat_messages_clamps_negative_paging(client, services):
    chat_id = _create_chat(client)["chatSession"]["id"]
    start = datetime.now(timezone.utc) + timedelta(minutes=1)
    for i in range(2):
        run(services.repositories.messages.create(ChatMessage(
            id=f"m{i}", chat_id=chat_id, user_id=DEFAULT_USER_ID, user_name="Default User",
            content=f"message {i}", timestamp=start + timedelta(minutes=i),
        )))
    url = f"/chatSession/getChatMessages/{chat_id}"

    from_start = client.get(url, params={"startIdx": -1, "count": 1})
    assert from_start.status_code == 200
    assert [m["id"] for m in from_start.json()] == ["m1"]

    everything = client.get(url, params={"count": -2})
    assert everything.status_code == 200
    assert len(everything.json()) == 3


def test_get_chat_messages_of_unknown_chat_is_not_found(client):
    resp = client.get(f"/chatSession/getChatMessages/{uuid.uuid4()}")
    assert resp.status_code == 404


def test_edit_chat_session_updates_only_given_fields(client, services):
    chat = _create_chat(client)["chatSession"]
    resp = client.post("/chatSession/edit", json={"id": chat["id"], "title": "Renamed", "memoryBalance": 0.8})
    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Renamed"
    assert body["memoryBalance"] == 0.8
    assert body["systemDescription"] == chat["systemDescription"]

    stored = run(services.repositories.sessions.try_find_by_id(chat["id"]))
    assert stored.title == "Renamed"


def test_edit_requires_id(client):
    assert client.post("/chatSession/edit", json={"title": "x"}).status_code == 400


def test_edit_by_non_participant_is_forbidden(client, services):
    chat = ChatSession(title="private")
    run(services.repositories.sessions.create(chat))
    resp = client.post("/chatSession/edit", json={"id": chat.id, "title": "hijack"})
    assert resp.status_code == 403
    assert run(services.repositories.sessions.try_find_by_id(chat.id)).title == "private"


def test_edit_of_deleted_chat_is_not_found(client, services):
    run(services.repositories.participants.create(ChatParticipant(user_id=DEFAULT_USER_ID, chat_id="gone")))
    assert client.post("/chatSession/edit", json={"id": "gone", "title": "x"}).status_code == 404


def test_edit_rejects_out_of_range_memory_balance(client):
    chat_id = _create_chat(client)["chatSession"]["id"]
    resp = client.post("/chatSession/edit", json={"id": chat_id, "memoryBalance": 1.5})
    assert resp.status_code == 422


def test_sources_include_chat_and_global_sources(client, services):
    chat_id = _create_chat(client)["chatSession"]["id"]
    repos = services.repositories
    run(repos.sources.create(MemorySource(id="doc", chat_id=chat_id, name="notes.pdf", shared_by=DEFAULT_USER_ID)))
    run(repos.sources.create(MemorySource(id="global", chat_id=GLOBAL_CHAT_ID, name="handbook.pdf")))
    run(repos.sources.create(MemorySource(id="other", chat_id=str(uuid.uuid4()), name="x.pdf")))

    resp = client.get(f"/chatSession/{chat_id}/sources")
    assert resp.status_code == 200
    assert sorted(s["id"] for s in resp.json()) == ["doc", "global"]


def test_sources_of_unknown_chat_is_not_found(client):
    assert client.get(f"/chatSession/{uuid.uuid4()}/sources").status_code == 404


def test_filesystem_backed_app_persists_across_restarts(filesystem_settings):
    with TestClient(create_app(filesystem_settings)) as first:
        chat_id = _create_chat(first)["chatSession"]["id"]
    with TestClient(create_app(filesystem_settings)) as second:
        assert second.get(f"/chatSession/getChat/{chat_id}").status_code == 200


def test_azure_ad_app_rejects_requests_without_token(settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"keys": []}))
    services = ChatServices(
        repositories=build_chat_store(settings.CHAT_STORE),
        ocr_engine=build_ocr_engine(settings.OCR_SUPPORT),
        authenticator=AzureAdAuthenticator(
            AzureAdOptions(tenant_id="tenant", client_id="client"),
            http_client=httpx.AsyncClient(transport=transport),
        ),
        prompts=settings.PROMPTS,
    )
    with TestClient(create_app(settings, services=services)) as client:
        resp = client.get("/chatSession/getAllChats/anyone")
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"
        assert client.get("/healthz").status_code == 200


def test_cors_only_enabled_with_allowed_origins(settings):
    with TestClient(create_app(make_settings(ALLOWED_ORIGINS=["https://chat.example.com"]))) as client:
        resp = client.options(
            "/chatSession/create",
            headers={"Origin": "https://chat.example.com", "Access-Control-Request-Method": "POST"},
        )
        assert resp.headers["access-control-allow-origin"] == "https://chat.example.com"

    with TestClient(create_app(settings)) as client:
        resp = client.get("/healthz", headers={"Origin": "https://chat.example.com"})
        assert "access-control-allow-origin" not in resp.headers
