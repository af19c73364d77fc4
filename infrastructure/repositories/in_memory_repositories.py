"""In-Memory Repository Implementations"""
import logging
from typing import Optional, List, Dict, Tuple
from uuid import UUID

from domain.auth import User, UserInDB
from domain.entities import Room, Reservation, Guest
from domain.errors import (
    GuestIdentityError, ReservationNotFoundError, SchedulingConflictError
)
from domain.repositories import (
    RoomRepository, ReservationRepository, GuestRepository,
    SettingRepository, UserRepository, AbstractUnitOfWork
)
from domain.value_objects import DateRange

logger = logging.getLogger(__name__)


class InMemoryDatabase:
    """Tables shared by the in-memory repositories and unit of work"""

    def __init__(self):
        self.rooms: Dict[str, Room] = {}
        self.reservations: Dict[UUID, Reservation] = {}
        self.guests: Dict[UUID, Guest] = {}
        self.settings: Dict[str, str] = {}
        self.users: Dict[UUID, UserInDB] = {}

    def guests_of(self, reservation_id: UUID) -> List[Guest]:
        return [
            g.model_copy(deep=True) for g in self.guests.values()
            if g.reservation_id == reservation_id
        ]

    def load_reservation(self, reservation: Reservation) -> Reservation:
        """Copy a stored reservation and attach its roster"""
        loaded = reservation.model_copy(deep=True)
        loaded.guests = self.guests_of(reservation.reservation_id)
        return loaded


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def find_by_id(self, room_id: str) -> Optional[Room]:
        room = self._db.rooms.get(room_id)
        return room.model_copy(deep=True) if room else None

    async def find_all(self) -> List[Room]:
        rooms = sorted(self._db.rooms.values(), key=lambda r: r.number)
        return [r.model_copy(deep=True) for r in rooms]


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        reservation = self._db.reservations.get(reservation_id)
        return self._db.load_reservation(reservation) if reservation else None

    async def find_periods_for_room(self, room_id: str) -> List[Tuple[UUID, DateRange]]:
        return [
            (r.reservation_id, r.date_range)
            for r in self._db.reservations.values() if r.room_id == room_id
        ]

    async def find_by_user_id(self, user_id: UUID) -> List[Reservation]:
        reservations = [r for r in self._db.reservations.values() if r.user_id == user_id]
        reservations.sort(key=lambda r: r.accommodation_date, reverse=True)
        return [self._db.load_reservation(r) for r in reservations]

    async def find_all(self) -> List[Reservation]:
        reservations = sorted(self._db.reservations.values(), key=lambda r: r.release_date)
        return [self._db.load_reservation(r) for r in reservations]

    async def count(self) -> int:
        return len(self._db.reservations)


class InMemoryGuestRepository(GuestRepository):
    """In-memory implementation of GuestRepository"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def find_by_reservation_id(self, reservation_id: UUID) -> List[Guest]:
        return self._db.guests_of(reservation_id)

    async def find_by_id(self, guest_id: UUID) -> Optional[Guest]:
        guest = self._db.guests.get(guest_id)
        return guest.model_copy(deep=True) if guest else None


class InMemorySettingRepository(SettingRepository):
    """In-memory implementation of SettingRepository"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def get(self, key: str) -> Optional[str]:
        return self._db.settings.get(key)


class InMemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        user = self._db.users.get(user_id)
        return User(**user.model_dump(exclude={"hashed_password"})) if user else None

    async def find_by_username(self, username: str) -> Optional[UserInDB]:
        for user in self._db.users.values():
            if user.username == username:
                return user.model_copy(deep=True)
        return None

    async def has_elevated_role(self, user_id: UUID) -> bool:
        user = self._db.users.get(user_id)
        return user is not None and user.has_elevated_role()


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """Applies staged writes to an InMemoryDatabase in one step.

    Commit first validates everything, then writes without awaiting, so no
    other coroutine can observe a half-applied unit. Overlapping periods on
    one room are rejected at commit like an exclusion constraint would be.
    """

    def __init__(self, db: InMemoryDatabase):
        super().__init__()
        self._db = db

    async def commit(self) -> None:
        self._validate()

        for reservation in self._reservations_to_add + self._reservations_to_replace:
            self._db.reservations[reservation.reservation_id] = reservation.model_copy(
                update={"guests": []}, deep=True
            )
        for reservation_id in self._reservations_to_remove:
            self._db.reservations.pop(reservation_id, None)

        for guest in self._guests_to_remove:
            self._db.guests.pop(guest.guest_id, None)
        for guest in self._guests_to_add + self._guests_to_update:
            self._db.guests[guest.guest_id] = guest.model_copy(deep=True)

        logger.debug("Committed unit of work with %d changes", self.pending_changes)
        self._clear()

    async def rollback(self) -> None:
        if self.pending_changes:
            logger.warning("Rolling back unit of work, discarding %d changes", self.pending_changes)
        self._clear()

    def _validate(self) -> None:
        for reservation in self._reservations_to_replace:
            if reservation.reservation_id not in self._db.reservations:
                raise ReservationNotFoundError(
                    f"Reservation {reservation.reservation_id} not found"
                )

        for guest in self._guests_to_add + self._guests_to_update:
            if guest.guest_id is None or guest.reservation_id is None:
                raise ValueError("Guests must carry an id and a reservation id before commit")
        self._validate_guest_identities()

        removed = set(self._reservations_to_remove)
        written = self._reservations_to_add + self._reservations_to_replace
        written_ids = {r.reservation_id for r in written}
        stored = [
            r for r in self._db.reservations.values()
            if r.reservation_id not in removed and r.reservation_id not in written_ids
        ]

        for index, candidate in enumerate(written):
            others = stored + written[:index]
            for existing in others:
                if existing.room_id != candidate.room_id:
                    continue
                if existing.date_range.conflicts_with(candidate.date_range):
                    raise SchedulingConflictError(
                        f"Room {candidate.room_id} is already booked between "
                        f"{existing.accommodation_date} and {existing.release_date}"
                    )

    def _validate_guest_identities(self) -> None:
        """Guest ids act as a primary key owned by one reservation"""
        removed = {g.guest_id for g in self._guests_to_remove}
        seen = set()

        for guest in self._guests_to_add:
            stored = self._db.guests.get(guest.guest_id)
            if guest.guest_id in seen or (stored is not None and guest.guest_id not in removed):
                raise GuestIdentityError(f"Guest {guest.guest_id} already exists")
            seen.add(guest.guest_id)

        for guest in self._guests_to_update:
            stored = self._db.guests.get(guest.guest_id)
            if guest.guest_id in seen or stored is None or stored.reservation_id != guest.reservation_id:
                raise GuestIdentityError(
                    f"Guest {guest.guest_id} is not on reservation {guest.reservation_id}"
                )
            seen.add(guest.guest_id)
