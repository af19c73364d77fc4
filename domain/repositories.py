"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List, Tuple
from uuid import UUID

from domain.auth import User, UserInDB
from domain.entities import Room, Reservation, Guest
from domain.value_objects import DateRange


class RoomRepository(ABC):
    """Read-only view of the room catalog"""

    @abstractmethod
    async def find_by_id(self, room_id: str) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Room]:
        """Find all rooms ordered by room number"""
        pass


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID, guests included"""
        pass

    @abstractmethod
    async def find_periods_for_room(self, room_id: str) -> List[Tuple[UUID, DateRange]]:
        """Find the booked periods of a room keyed by reservation ID"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> List[Reservation]:
        """Find reservations of a user, latest accommodation date first"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations, earliest release date first"""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Count all reservations"""
        pass


class GuestRepository(ABC):
    """Repository interface for guest rosters"""

    @abstractmethod
    async def find_by_reservation_id(self, reservation_id: UUID) -> List[Guest]:
        """Find the persisted roster of a reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, guest_id: UUID) -> Optional[Guest]:
        """Find a guest by ID regardless of its reservation"""
        pass


class SettingRepository(ABC):
    """Key-value settings store"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the raw value of ``key`` or None when not configured"""
        pass


class UserRepository(ABC):
    """Repository interface for user accounts and their roles"""

    @abstractmethod
    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        pass

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[UserInDB]:
        """Find a user with its password hash, for login"""
        pass

    @abstractmethod
    async def has_elevated_role(self, user_id: UUID) -> bool:
        """Check whether the user holds any role besides the base USER role"""
        pass


class AbstractUnitOfWork(ABC):
    """Collects reservation and guest writes and applies them as one unit.

    Usage:
        async with uow_factory() as uow:
            uow.add_reservation(reservation)
            uow.remove_guests(stale_guests)
        # committed here, or rolled back if the block raised
    """

    def __init__(self):
        self._reservations_to_add: List[Reservation] = []
        self._reservations_to_replace: List[Reservation] = []
        self._reservations_to_remove: List[UUID] = []
        self._guests_to_add: List[Guest] = []
        self._guests_to_update: List[Guest] = []
        self._guests_to_remove: List[Guest] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()

    def add_reservation(self, reservation: Reservation) -> None:
        """Stage a new reservation together with its guests"""
        self._reservations_to_add.append(reservation)
        self._guests_to_add.extend(reservation.guests)

    def replace_reservation(self, reservation: Reservation) -> None:
        """Stage an overwrite of the reservation's own fields"""
        self._reservations_to_replace.append(reservation)

    def remove_reservation(self, reservation_id: UUID) -> None:
        self._reservations_to_remove.append(reservation_id)

    def add_guests(self, guests: List[Guest]) -> None:
        self._guests_to_add.extend(guests)

    def update_guests(self, guests: List[Guest]) -> None:
        self._guests_to_update.extend(guests)

    def remove_guests(self, guests: List[Guest]) -> None:
        self._guests_to_remove.extend(guests)

    @property
    def pending_changes(self) -> int:
        return sum(len(changes) for changes in (
            self._reservations_to_add, self._reservations_to_replace,
            self._reservations_to_remove, self._guests_to_add,
            self._guests_to_update, self._guests_to_remove
        ))

    def _clear(self) -> None:
        for changes in (
            self._reservations_to_add, self._reservations_to_replace,
            self._reservations_to_remove, self._guests_to_add,
            self._guests_to_update, self._guests_to_remove
        ):
            changes.clear()

    @abstractmethod
    async def commit(self) -> None:
        """Apply every staged change or none of them"""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Discard staged changes"""
        pass
