import json

import httpx
import pytest
from sqlalchemy import select

from accountability.core.websocket.websocket_manager import manager
from accountability.models import DeviceToken, Notification
from accountability.schemas.notifications import NotificationType
from accountability.secrets_manager import SecretsManager
from accountability.services import notification_service
from accountability.services.notification_service import dispatch, render_notification
from accountability.services.notification_service import send_push_notifications as send_push_to_relay


class FakeWebSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


@pytest.fixture
def online(monkeypatch):
    sockets = {}

    def go_online(user_id, **kwargs):
        sockets[user_id] = FakeWebSocket(**kwargs)
        monkeypatch.setitem(manager.active_connections, user_id, sockets[user_id])
        return sockets[user_id]

    return go_online


def test_render_fills_missing_names():
    title, message = render_notification(NotificationType.HABIT_NUDGE, {"habit_name": None})
    assert title == "You've been nudged"
    assert message == "Your partner nudged you to complete your habit."


async def test_dispatch_stores_and_sends_over_websocket(db, users, online, push_calls):
    socket = online("bob")

    notification = await dispatch(
        db, "bob", NotificationType.HABIT_INVITE,
        {"habit_name": "Cold Plunge", "from_name": "Alice"}, from_user_id="alice",
    )

    assert notification.type == "habit_invite"
    assert json.loads(notification.data)["habit_name"] == "Cold Plunge"
    assert socket.sent[0]["type"] == "notification"
    assert socket.sent[0]["kind"] == "habit_invite"
    assert push_calls == []


async def test_dispatch_pushes_to_ios_devices_when_offline(db, users, push_calls):
    db.add_all([
        DeviceToken(user_id="bob", token="ios-token-1", platform="ios"),
        DeviceToken(user_id="bob", token="android-token", platform="android"),
        DeviceToken(user_id="bob", token="ios-token-old", platform="ios", is_active=False),
    ])
    await db.commit()

    await dispatch(db, "bob", NotificationType.HABIT_NUDGE, {"from_name": "Alice", "habit_name": "Reading"})

    tokens, notification = push_calls[0]
    assert [t.token for t in tokens] == ["ios-token-1"]
    assert notification.message == "Alice nudged you to complete Reading."


async def test_failed_websocket_send_drops_connection(db, users, online):
    online("bob", fail=True)

    notification = await dispatch(db, "bob", NotificationType.HABIT_NUDGE, {})

    assert notification is not None
    assert not manager.is_user_online("bob")
    stored = (await db.execute(select(Notification).where(Notification.user_id == "bob"))).scalars().all()
    assert len(stored) == 1


class FakeSecretsClient:
    def __init__(self):
        self.calls = 0
        self.fail = False

    def get_secret_value(self, SecretId):
        self.calls += 1
        if self.fail:
            raise RuntimeError("throttled")
        return {"SecretString": json.dumps({"username": "app", "password": f"pw-{self.calls}"})}


def test_secrets_are_cached_until_ttl_expires(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("accountability.secrets_manager.time.time", lambda: now[0])
    secrets = SecretsManager(region_name="eu-west-1", cache_ttl=300)
    secrets._client = FakeSecretsClient()

    assert secrets.get_db_credentials()["password"] == "pw-1"
    assert secrets.get_db_credentials()["password"] == "pw-1"

    now[0] += 301
    assert secrets.get_db_credentials()["password"] == "pw-2"


def test_stale_secret_served_when_refresh_fails(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("accountability.secrets_manager.time.time", lambda: now[0])
    secrets = SecretsManager(region_name="eu-west-1", cache_ttl=300)
    secrets._client = FakeSecretsClient()
    secrets.get_db_credentials()

    now[0] += 301
    secrets._client.fail = True
    assert secrets.get_db_credentials()["password"] == "pw-1"

    secrets.clear_cache()
    with pytest.raises(RuntimeError):
        secrets.get_db_credentials()


async def test_push_relay_receives_one_request_per_device(monkeypatch):
    seen = []

    def relay(request):
        body = json.loads(request.content)
        seen.append(body)
        if body["deviceToken"] == "broken-device":
            return httpx.Response(502)
        return httpx.Response(200, json={"ok": True})

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        notification_service.httpx, "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(relay), **kwargs),
    )
    notification = Notification(id="n-1", type="habit_nudge", title="You've been nudged", message="Alice nudged you")

    results = await send_push_to_relay(
        [DeviceToken(token="device-token-1"), DeviceToken(token="broken-device")], notification
    )

    assert [r["status_code"] for r in results] == [200, 502]
    assert seen[0]["data"] == {"notificationId": "n-1", "type": "habit_nudge"}
    assert seen[0]["title"] == "You've been nudged"
