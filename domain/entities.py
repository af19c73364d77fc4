"""Domain Entities - Aggregates"""
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from datetime import datetime, date, timezone
from typing import Optional, List
from decimal import Decimal

from domain.errors import GuestIdentityError
from domain.value_objects import DateRange


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Room(BaseModel):
    """Bookable room as seen by the booking engine (catalog owned elsewhere)"""
    model_config = ConfigDict(from_attributes=True)

    room_id: str
    number: int
    capacity: int = Field(ge=1)
    adult_price: Decimal = Field(ge=0)
    child_price: Decimal = Field(ge=0)


class Guest(BaseModel):
    """Child Entity - occupant listed on a reservation"""
    model_config = ConfigDict(from_attributes=True)

    guest_id: Optional[UUID] = None
    full_name: Optional[str] = None
    is_adult: bool = True
    reservation_id: Optional[UUID] = None

    @property
    def is_placeholder(self) -> bool:
        """Guests without a name are ignored for pricing and capacity"""
        return self.full_name is None

    @property
    def has_identity(self) -> bool:
        return self.guest_id is not None


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""
    model_config = ConfigDict(from_attributes=True)

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # References to other contexts
    room_id: str
    user_id: UUID

    # Stay window
    accommodation_date: date
    release_date: date

    # Add-ons
    all_inclusive: bool = False
    breakfast: bool = False

    price: Decimal = Decimal("0")

    # Collections (child entities)
    guests: List[Guest] = []

    # Metadata
    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: datetime = Field(default_factory=_utcnow)
    version: int = 1

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def book(
        room_id: str,
        user_id: UUID,
        date_range: DateRange,
        all_inclusive: bool,
        breakfast: bool,
        price: Decimal,
        guests: List[Guest]
    ) -> "Reservation":
        """Create a new reservation and attach its guests"""
        reservation = Reservation(
            room_id=room_id,
            user_id=user_id,
            accommodation_date=date_range.accommodation_date,
            release_date=date_range.release_date,
            all_inclusive=all_inclusive,
            breakfast=breakfast,
            price=price,
        )
        reservation.guests = [reservation.adopt_guest(g) for g in guests]
        return reservation

    # ==================== MODIFICATION METHODS ====================
    def reschedule(
        self,
        room_id: str,
        user_id: UUID,
        date_range: DateRange,
        all_inclusive: bool,
        breakfast: bool,
        price: Decimal,
        guests: List[Guest]
    ) -> None:
        """Replace every booked field in place"""
        self.room_id = room_id
        self.user_id = user_id
        self.accommodation_date = date_range.accommodation_date
        self.release_date = date_range.release_date
        self.all_inclusive = all_inclusive
        self.breakfast = breakfast
        self.price = price
        self.guests = list(guests)

        self.modified_at = _utcnow()
        self.version += 1

    def adopt_guest(self, guest: Guest) -> Guest:
        """Return a copy of ``guest`` stamped with this reservation and an id"""
        if guest.reservation_id is not None and guest.reservation_id != self.reservation_id:
            raise GuestIdentityError(
                f"Guest {guest.guest_id} belongs to reservation {guest.reservation_id}"
            )
        return guest.model_copy(update={
            "guest_id": guest.guest_id or uuid4(),
            "reservation_id": self.reservation_id,
        })

    # ==================== QUERY METHODS ====================
    @property
    def date_range(self) -> DateRange:
        return DateRange(
            accommodation_date=self.accommodation_date,
            release_date=self.release_date
        )

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    def get_nights(self) -> Decimal:
        return self.date_range.nights()
