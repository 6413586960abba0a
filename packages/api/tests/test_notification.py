# This project was developed with assistance from AI tools.
"""Tests for outbound notifications."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from db.enums import ActorType

from src.services import notification
from src.services.notification import (
    dispatch,
    send_actor_rejection_notification,
    send_incomplete_actor_info_notification,
    send_tenant_replacement_notification,
)

from .factories import make_actor


@pytest.fixture
def webhook(monkeypatch):
    monkeypatch.setattr(notification.settings, "NOTIFICATION_WEBHOOK_URL", "https://relay.test/hook")
    client = MagicMock()
    client.post = AsyncMock(return_value=httpx.Response(202, request=httpx.Request("POST", "https://relay.test/hook")))
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    with patch("src.services.notification.httpx.AsyncClient", return_value=client):
        yield client


@pytest.mark.asyncio
async def test_invitation_posts_portal_link(webhook):
    actor = make_actor(ActorType.AVAL, id=21, policy_id=4)
    assert await send_incomplete_actor_info_notification(4, [actor]) is True

    webhook.post.assert_awaited_once()
    payload = webhook.post.call_args.kwargs["json"]
    assert payload["event"] == "incomplete_actor_info"
    assert payload["policy_id"] == 4
    [entry] = payload["actors"]
    assert entry["actor_id"] == 21
    assert entry["actor_type"] == "aval"
    assert entry["name"] == "Ana Perez"
    assert entry["portal_url"].endswith(f"/actor/aval/{'ab' * 32}")


@pytest.mark.asyncio
async def test_payload_carries_no_form_data(webhook):
    actor = make_actor(curp="GOMA900101MDFRRN09", clabe="002180001234567891")
    await send_incomplete_actor_info_notification(actor.policy_id, [actor])
    body = str(webhook.post.call_args.kwargs["json"])
    assert "GOMA900101MDFRRN09" not in body
    assert "002180001234567891" not in body


@pytest.mark.asyncio
async def test_reminder_skips_complete_actors(webhook):
    pending = make_actor(id=1)
    done = make_actor(ActorType.LANDLORD, id=2, information_complete=True)
    await send_incomplete_actor_info_notification(4, [pending, done])
    actors = webhook.post.call_args.kwargs["json"]["actors"]
    assert [entry["actor_id"] for entry in actors] == [1]


@pytest.mark.asyncio
async def test_nobody_to_remind_sends_nothing(webhook):
    done = make_actor(information_complete=True)
    assert await send_incomplete_actor_info_notification(4, [done]) is False
    webhook.post.assert_not_awaited()


@pytest.mark.asyncio
async def test_rejection_carries_reason_and_link(webhook):
    actor = make_actor(id=21, policy_id=4, information_complete=True)
    await send_actor_rejection_notification(actor, "Payslips are unreadable")

    payload = webhook.post.call_args.kwargs["json"]
    assert payload["event"] == "actor_rejected"
    assert payload["reason"] == "Payslips are unreadable"
    assert [entry["actor_id"] for entry in payload["actors"]] == [21]


@pytest.mark.asyncio
async def test_without_webhook_only_logs(monkeypatch):
    monkeypatch.setattr(notification.settings, "NOTIFICATION_WEBHOOK_URL", None)
    with patch("src.services.notification.httpx.AsyncClient") as client_cls:
        assert await send_tenant_replacement_notification(4, "broker-1") is False
    client_cls.assert_not_called()


@pytest.mark.asyncio
async def test_dispatch_swallows_delivery_failures(caplog):
    async def failing():
        raise httpx.ConnectError("relay down")

    task = dispatch(failing(), name="invite-policy-9")
    await asyncio.wait_for(task, timeout=1)
    assert task.exception() is None
    assert "Notification invite-policy-9 failed" in caplog.text
