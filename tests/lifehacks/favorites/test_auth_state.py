"""Tests for the identity publish/subscribe holder."""

from __future__ import annotations

import logging

import pytest

from lifehacks.services.favorites import AuthState, Identity


def test_identity_requires_token_to_be_authenticated() -> None:
    assert Identity(auth_token="abc").is_authenticated
    assert not Identity(auth_token="").is_authenticated


@pytest.mark.asyncio
async def test_publish_notifies_listeners_in_order() -> None:
    auth_state = AuthState()
    received: list[tuple[str, Identity | None]] = []

    async def first(identity: Identity | None) -> None:
        received.append(("first", identity))

    async def second(identity: Identity | None) -> None:
        received.append(("second", identity))

    auth_state.subscribe(first)
    auth_state.subscribe(second)
    identity = Identity(auth_token="abc")

    await auth_state.publish(identity)

    assert auth_state.identity == identity
    assert received == [("first", identity), ("second", identity)]


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others(
    caplog: pytest.LogCaptureFixture,
) -> None:
    auth_state = AuthState()
    received: list[Identity | None] = []

    async def broken(identity: Identity | None) -> None:
        raise RuntimeError("boom")

    async def healthy(identity: Identity | None) -> None:
        received.append(identity)

    auth_state.subscribe(broken)
    auth_state.subscribe(healthy)
    caplog.set_level(logging.ERROR)

    await auth_state.publish(None)

    assert received == [None]
    assert any("Identity listener" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent() -> None:
    auth_state = AuthState()
    calls: list[Identity | None] = []

    async def listener(identity: Identity | None) -> None:
        calls.append(identity)

    unsubscribe = auth_state.subscribe(listener)
    unsubscribe()
    unsubscribe()

    await auth_state.publish(Identity(auth_token="abc"))

    assert calls == []
