"""Import all models so Alembic can discover them via Base.metadata."""
from dm_service.infrastructure.db.models.message import MessageModel
from dm_service.infrastructure.db.models.user import UserModel

__all__ = [
    "MessageModel",
    "UserModel",
]
