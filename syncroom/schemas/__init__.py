"""
syncroom.schemas
~~~~~~~~~~~~~~~~
Pydantic schemas for the realtime channel and the REST API.
"""
from syncroom.schemas.api_response import ApiResponse
from syncroom.schemas.room_events import (
    Participant,
    QueuedTrack,
    RoomEvent,
)
from syncroom.schemas.room_info import RoomDetailData, RoomSummaryData

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()

__all__ = [
    "ApiResponse",
    "Participant",
    "QueuedTrack",
    "RoomDetailData",
    "RoomEvent",
    "RoomSummaryData",
]
