"""Tests for SyncTrigger against an httpx.MockTransport."""

import httpx

from supplier_orders.application.sync_trigger import SyncTrigger


def _make_trigger(handler) -> tuple[SyncTrigger, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.Client(transport=httpx.MockTransport(record))
    return SyncTrigger(client, "http://testserver/"), seen


def test_posts_to_sync_endpoint() -> None:
    trigger, seen = _make_trigger(
        lambda _: httpx.Response(200, json={"success": True, "ordersFetched": 3})
    )

    result = trigger.trigger()

    assert result.success is True
    assert result.payload == {"success": True, "ordersFetched": 3}
    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://testserver/api/sync-orders"


def test_error_status_is_a_failure() -> None:
    trigger, _ = _make_trigger(lambda _: httpx.Response(500, json={"error": "boom"}))

    result = trigger.trigger()

    assert result.success is False
    assert result.payload == {"error": "boom"}


def test_non_json_body_is_kept_as_error_text() -> None:
    trigger, _ = _make_trigger(lambda _: httpx.Response(502, text="Bad gateway"))

    result = trigger.trigger()

    assert result.success is False
    assert result.payload == {"error": "Bad gateway"}


def test_non_object_json_is_wrapped() -> None:
    trigger, _ = _make_trigger(lambda _: httpx.Response(200, json=[1, 2]))

    assert trigger.trigger().payload == {"result": [1, 2]}


def test_transport_error_is_reported_not_raised() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    trigger, _ = _make_trigger(refuse)

    result = trigger.trigger()

    assert result.success is False
    assert "connection refused" in result.payload["error"]
