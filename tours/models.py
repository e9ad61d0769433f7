from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class CheckInStatus(str, Enum):
    CONFIRMED = "CONFIRMED"


class EventType(str, Enum):
    TOUR_CREATED = "TOUR_CREATED"
    TOUR_UPDATED = "TOUR_UPDATED"
    TOUR_UPVOTED = "TOUR_UPVOTED"
    TOUR_DEACTIVATED = "TOUR_DEACTIVATED"
    CHECK_IN_CONFIRMED = "CHECK_IN_CONFIRMED"
    POINTS_AWARDED = "POINTS_AWARDED"
    VOTE_THRESHOLD_CHANGED = "VOTE_THRESHOLD_CHANGED"
    OPERATIONS_PAUSED = "OPERATIONS_PAUSED"
    OPERATIONS_RESUMED = "OPERATIONS_RESUMED"


class CreateTourRequest(BaseModel):
    image_ref: str = Field(..., description="Content-addressed image identifier")
    location: str = Field(..., description="Location descriptor, compared by exact equality")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "image_ref": "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG",
            "location": "Paris",
        }
    })


class UpdateTourRequest(BaseModel):
    image_ref: str
    location: str


class CheckInRequest(BaseModel):
    image_ref: str = Field(..., description="Proof-of-presence image identifier")
    location: str = Field(..., description="Claimed location, must match the tour exactly")


class SetVoteThresholdRequest(BaseModel):
    threshold: int = Field(..., ge=1)


class Tour(BaseModel):
    id: int
    owner: str
    image_ref: str
    location: str
    upvotes: int = 0
    verified: bool = False
    active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CheckIn(BaseModel):
    tour_id: int
    participant: str
    image_ref: str
    location: str
    status: CheckInStatus = CheckInStatus.CONFIRMED
    checked_in_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ParticipantBalance(BaseModel):
    participant: str
    points: int


class EngineConfig(BaseModel):
    creation_points: int
    check_in_points: int
    vote_threshold: int
    min_vote_stake: Decimal
    operations_enabled: bool


class TourEvent(BaseModel):
    type: EventType
    tour_id: Optional[int] = None
    payload: dict = Field(default_factory=dict)
    created_at: datetime
