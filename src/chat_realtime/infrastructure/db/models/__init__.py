"""Import all models so Base.metadata sees every table."""
from chat_realtime.infrastructure.db.models.conversation import ConversationModel
from chat_realtime.infrastructure.db.models.identity import IdentityModel
from chat_realtime.infrastructure.db.models.message import (
    MessageModel,
    MessageReactionModel,
    MessageReadReceiptModel,
)
from chat_realtime.infrastructure.db.models.participant import ParticipantModel
from chat_realtime.infrastructure.db.models.room import RoomMemberModel, RoomModel

__all__ = [
    "ConversationModel",
    "IdentityModel",
    "MessageModel",
    "MessageReactionModel",
    "MessageReadReceiptModel",
    "ParticipantModel",
    "RoomMemberModel",
    "RoomModel",
]
