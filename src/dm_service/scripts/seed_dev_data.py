"""Seed development data: two users and a short conversation between them."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from dm_service.domain.entities.message import Message
from dm_service.infrastructure.db.models.user import UserModel
from dm_service.infrastructure.db.session import AsyncSessionLocal
from dm_service.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)


async def seed() -> None:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        now = datetime.now(timezone.utc)

        alice = UserModel(id=uuid.uuid4(), full_name="Alice Example", email="alice@example.com")
        bob = UserModel(id=uuid.uuid4(), full_name="Bob Example", email="bob@example.com")
        session.add_all([alice, bob])
        await uow.flush()

        messages_data = [
            (alice.id, bob.id, "Hey Bob, are you around?"),
            (bob.id, alice.id, "Yes! What's up?"),
            (alice.id, bob.id, "Sending the draft in a minute."),
        ]
        for offset, (sender_id, receiver_id, text) in enumerate(messages_data):
            created_at = now + timedelta(seconds=offset)
            await uow.messages_w.insert(
                Message(
                    id=uuid.uuid4(),
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    text=text,
                    image=None,
                    reply_to=None,
                    is_edited=False,
                    is_delivered=False,
                    is_read=False,
                    read_at=None,
                    created_at=created_at,
                    updated_at=created_at,
                )
            )

        await uow.commit()
        logger.info(
            "Seeded users %s, %s with %d messages", alice.id, bob.id, len(messages_data),
        )


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
