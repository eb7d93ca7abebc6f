"""In-process registry of live user connections."""
from __future__ import annotations

import logging
from uuid import UUID

from dm_service.application.ports.realtime import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps each user to at most one live connection.

    A newer connection for the same user replaces the older mapping. All
    mutations are synchronous, so they never interleave with another
    coroutine's register/unregister.
    """

    def __init__(self) -> None:
        self._connections: dict[UUID, Connection] = {}

    def register(self, user_id: UUID, connection: Connection) -> Connection | None:
        """Install ``connection`` for ``user_id``. Return the handle it superseded, if any."""
        previous = self._connections.get(user_id)
        self._connections[user_id] = connection
        if previous is connection:
            return None
        if previous is not None:
            logger.info("Connection for %s superseded by a newer one", user_id)
        logger.debug("Registered %s (total=%d)", user_id, len(self._connections))
        return previous

    def lookup(self, user_id: UUID) -> Connection | None:
        return self._connections.get(user_id)

    def unregister(self, user_id: UUID, connection: Connection) -> bool:
        """Remove the mapping only if ``connection`` is still the registered one."""
        if self._connections.get(user_id) is not connection:
            logger.debug("Ignoring stale unregister for %s", user_id)
            return False
        del self._connections[user_id]
        logger.debug("Unregistered %s (total=%d)", user_id, len(self._connections))
        return True

    def list_user_ids(self) -> list[UUID]:
        return list(self._connections)

    def is_online(self, user_id: UUID) -> bool:
        return user_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)
