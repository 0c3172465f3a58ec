from __future__ import annotations

import uuid

import pytest

from chat_realtime.application.exceptions import NotFoundError, ValidationError
from chat_realtime.services import conversation_service
from tests.conftest import make_conversation


@pytest.mark.asyncio
async def test_creates_direct_conversation(store, uow, alice, bob):
    conv, created = await conversation_service.get_or_create_direct_conversation(
        alice.id, bob.id, uow,
    )

    assert created is True
    assert conv.is_group is False
    assert conv.participant_ids == {alice.id, bob.id}
    assert conv.unread_count_for(bob.id) == 0
    assert uow._committed is True


@pytest.mark.asyncio
async def test_returns_existing_conversation(store, uow, alice, bob):
    first, _ = await conversation_service.get_or_create_direct_conversation(alice.id, bob.id, uow)

    again, created = await conversation_service.get_or_create_direct_conversation(
        bob.id, alice.id, uow,
    )

    assert created is False
    assert again.id == first.id
    assert len(store.conversations) == 1


@pytest.mark.asyncio
async def test_group_conversation_is_not_reused(store, uow, alice, bob, carol):
    group = make_conversation(store, alice.id, bob.id, carol.id, is_group=True)

    conv, created = await conversation_service.get_or_create_direct_conversation(
        alice.id, bob.id, uow,
    )

    assert created is True
    assert conv.id != group.id


@pytest.mark.asyncio
async def test_conversation_with_self_rejected(uow, alice):
    with pytest.raises(ValidationError):
        await conversation_service.get_or_create_direct_conversation(alice.id, alice.id, uow)


@pytest.mark.asyncio
async def test_unknown_participant(uow, alice):
    with pytest.raises(NotFoundError):
        await conversation_service.get_or_create_direct_conversation(alice.id, uuid.uuid4(), uow)
