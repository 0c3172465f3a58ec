"""Seed development data: two identities, a shared room and a direct conversation.

Prints a signed token per identity so a local client can connect right away
(HS256 mode only).
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt

from chat_realtime.config import settings
from chat_realtime.infrastructure.db.base import Base
from chat_realtime.infrastructure.db.models import (
    ConversationModel,
    IdentityModel,
    ParticipantModel,
    RoomMemberModel,
    RoomModel,
)
from chat_realtime.infrastructure.db.session import AsyncSessionLocal, engine

logger = logging.getLogger(__name__)

USERNAMES = ("alice", "bob")


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        now = datetime.now(timezone.utc)
        identities = [IdentityModel(id=uuid.uuid4(), username=name) for name in USERNAMES]
        session.add_all(identities)
        await session.flush()

        room = RoomModel(id=uuid.uuid4(), name="general", owner_id=identities[0].id, is_private=False)
        session.add(room)
        await session.flush()
        session.add_all(RoomMemberModel(room_id=room.id, identity_id=i.id) for i in identities)

        conv = ConversationModel(id=uuid.uuid4(), is_group=False, created_at=now, updated_at=now)
        session.add(conv)
        await session.flush()
        session.add_all(
            ParticipantModel(conversation_id=conv.id, identity_id=i.id, unread_count=0)
            for i in identities
        )

        await session.commit()
        logger.info("Seeded room %s and conversation %s", room.id, conv.id)

    for identity in identities:
        token = jwt.encode(
            {"sub": str(identity.id), "exp": now + timedelta(days=1)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        logger.info("%s (%s): %s", identity.username, identity.id, token)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
