"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.entities import Guest
from domain.enums import UserRole


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class GuestRequest(BaseModel):
    """Guest request DTO - omit guest_id for a new guest"""
    guest_id: Optional[UUID] = None
    full_name: Optional[str] = None
    is_adult: bool = True

    def to_entity(self) -> Guest:
        return Guest(guest_id=self.guest_id, full_name=self.full_name, is_adult=self.is_adult)


class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    room_id: str
    accommodation_date: date
    release_date: date
    all_inclusive: bool = False
    breakfast: bool = False
    guests: List[GuestRequest] = []


class UpdateReservationRequest(BaseModel):
    """Update reservation request DTO"""
    accommodation_date: date
    release_date: date
    all_inclusive: bool = False
    breakfast: bool = False
    guests: List[GuestRequest] = []


class UpdateGuestsRequest(BaseModel):
    """Replace guest roster request DTO"""
    guests: List[GuestRequest]


class GuestResponse(BaseModel):
    """Guest response DTO"""
    guest_id: UUID
    full_name: Optional[str] = None
    is_adult: bool


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    room_id: str
    user_id: UUID
    accommodation_date: date
    release_date: date
    all_inclusive: bool
    breakfast: bool
    price: Decimal
    guests: List[GuestResponse]
    created_at: datetime
    modified_at: datetime
    version: int


class CountResponse(BaseModel):
    count: int


# ============================================================================
# AVAILABILITY SCHEMAS
# ============================================================================

class CheckAvailabilityRequest(BaseModel):
    """Check availability request DTO"""
    room_id: str
    accommodation_date: date
    release_date: date
    reservation_id: Optional[UUID] = None


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: str
    number: int
    capacity: int = Field(ge=1)
    adult_price: Decimal
    child_price: Decimal


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
    roles: List[UserRole]
