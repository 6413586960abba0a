# This project was developed with assistance from AI tools.
"""Outbound notifications.

Payloads are posted to ``NOTIFICATION_WEBHOOK_URL``, where a mail relay
renders and sends them. They carry ids, actor types and portal links only,
never form data. When no webhook is configured the payload is only logged.

Notifications never fail the mutation that triggered them: callers hand the
coroutine to ``dispatch`` and move on.
"""

import asyncio
import logging
from collections.abc import Coroutine, Iterable
from typing import Any

import httpx
from db import Actor

from ..core.config import settings
from .actors import actor_display_name
from .tokens import actor_portal_url

logger = logging.getLogger(__name__)

# Retain references so pending notifications are not garbage-collected mid-flight
_notification_tasks: set[asyncio.Task] = set()


async def _post(event: str, payload: dict[str, Any]) -> bool:
    """Deliver one notification. Returns False when only logged or nobody to notify."""
    if payload.get("actors") == []:
        return False
    if not settings.NOTIFICATION_WEBHOOK_URL:
        logger.info("Notification %s not sent (no webhook configured)", event)
        return False
    async with httpx.AsyncClient(timeout=settings.NOTIFICATION_TIMEOUT_SECONDS) as client:
        response = await client.post(
            settings.NOTIFICATION_WEBHOOK_URL,
            json={"event": event, **payload},
        )
        response.raise_for_status()
    logger.info("Notification %s delivered", event)
    return True


def _actor_entry(actor: Actor) -> dict[str, Any]:
    return {
        "actor_id": actor.id,
        "actor_type": actor.actor_type.value,
        "name": actor_display_name(actor),
        "email": actor.email,
        "portal_url": actor_portal_url(actor) if actor.access_token else None,
    }


# The send_* helpers read the actors immediately and return the delivery
# coroutine, so a dispatched notification never touches ORM state later.


def send_incomplete_actor_info_notification(
    policy_id: int, actors: Iterable[Actor]
) -> Coroutine[Any, Any, bool]:
    """Invite, or remind, the actors that have not completed their information.

    One payload per policy; complete actors are left out.
    """
    entries = [_actor_entry(actor) for actor in actors if not actor.information_complete]
    return _post("incomplete_actor_info", {"policy_id": policy_id, "actors": entries})


def send_actor_rejection_notification(actor: Actor, reason: str | None) -> Coroutine[Any, Any, bool]:
    """Tell a rejected actor what to correct, with the portal link to do it."""
    return _post(
        "actor_rejected",
        {"policy_id": actor.policy_id, "actors": [_actor_entry(actor)], "reason": reason},
    )


def send_tenant_replacement_notification(
    policy_id: int, managed_by: str | None
) -> Coroutine[Any, Any, bool]:
    """Tell the policy's broker that the tenant was replaced."""
    return _post("tenant_replaced", {"policy_id": policy_id, "managed_by": managed_by})


async def _guarded(coro: Coroutine[Any, Any, Any], name: str) -> None:
    try:
        await coro
    except Exception:
        logger.exception("Notification %s failed", name)


def dispatch(coro: Coroutine[Any, Any, Any], *, name: str = "notification") -> asyncio.Task:
    """Schedule a notification without waiting for it.

    Failures are logged and never reach the caller.
    """
    task = asyncio.create_task(_guarded(coro, name), name=name)
    _notification_tasks.add(task)
    task.add_done_callback(_notification_tasks.discard)
    return task
