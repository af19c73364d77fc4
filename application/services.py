"""Application Services - Booking use cases"""
import logging
from uuid import UUID, uuid4
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, List, Optional, TypeVar

from pydantic import BaseModel

from domain.entities import Room, Reservation, Guest
from domain.errors import (
    GuestIdentityError, InvalidWindowError, RoomNotFoundError, ReservationNotFoundError,
    SchedulingConflictError, CapacityExceededError, UnauthorizedError,
    ConfigurationMissingError
)
from domain.repositories import (
    RoomRepository, ReservationRepository, GuestRepository,
    SettingRepository, UserRepository, AbstractUnitOfWork
)
from domain.value_objects import DateRange, PriceRules
from infrastructure.config import ALL_INCLUSIVE_PRICE_KEY, BREAKFAST_PRICE_KEY
from infrastructure.locks import RoomLocks

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_is(reservation: Reservation) -> Reservation:
    return reservation


def get_page_items(items: List[T], page: int, elements_on_page: int) -> List[T]:
    """Slice one 1-based page out of an ordered list"""
    if page < 1 or elements_on_page < 1:
        raise ValueError("Page and elements on page must be positive")
    start = (page - 1) * elements_on_page
    return items[start:start + elements_on_page]


class AvailabilityService:
    """Service for room availability checks"""

    def __init__(self,
                 reservation_repo: ReservationRepository,
                 room_repo: Optional[RoomRepository] = None):
        self.reservation_repo = reservation_repo
        self.room_repo = room_repo

    async def is_available(
        self,
        room_id: str,
        accommodation_date: date,
        release_date: date,
        reservation_id: Optional[UUID] = None
    ) -> bool:
        """Check whether the room is free for the window.

        Malformed or past windows are reported as unavailable. The periods
        of ``reservation_id`` are ignored so an update never collides with
        itself.
        """
        if accommodation_date >= release_date or accommodation_date < date.today():
            return False

        candidate = DateRange(accommodation_date=accommodation_date, release_date=release_date)
        periods = await self.reservation_repo.find_periods_for_room(room_id)

        return not any(
            period.conflicts_with(candidate)
            for owner_id, period in periods
            if reservation_id is None or owner_id != reservation_id
        )

    async def get_free_rooms_at_present(self) -> List[Room]:
        """Rooms nobody occupies today, ordered by room number"""
        today = date.today()
        free = []
        for room in await self.room_repo.find_all():
            periods = await self.reservation_repo.find_periods_for_room(room.room_id)
            if not any(period.contains(today) for _, period in periods):
                free.append(room)
        return free

    async def count_free_rooms_at_present(self) -> int:
        return len(await self.get_free_rooms_at_present())


class PricingService:
    """Service for stay price calculation"""

    def __init__(self, setting_repo: SettingRepository):
        self.setting_repo = setting_repo

    async def _get_price(self, key: str) -> Decimal:
        value = await self.setting_repo.get(key)
        if value is None:
            raise ConfigurationMissingError(f"Setting {key} is not configured")
        try:
            price = Decimal(value)
        except InvalidOperation:
            raise ConfigurationMissingError(f"Setting {key} is not a number: {value!r}")
        if not price.is_finite() or price < 0:
            raise ConfigurationMissingError(f"Setting {key} must be a non-negative amount: {value!r}")
        return price

    async def resolve_price_rules(self) -> PriceRules:
        """Read both add-on surcharges from the settings store"""
        return PriceRules(
            all_inclusive_price=await self._get_price(ALL_INCLUSIVE_PRICE_KEY),
            breakfast_price=await self._get_price(BREAKFAST_PRICE_KEY)
        )

    @staticmethod
    def price_for_night(
        room: Room,
        guests: Iterable[Guest],
        all_inclusive: bool,
        breakfast: bool,
        rules: Optional[PriceRules] = None
    ) -> Decimal:
        """Calculate the price of one night.

        The room's adult price is charged once more for the implicit
        occupant who is not listed among the guests. All-inclusive wins
        over breakfast when both are requested.
        """
        listed = [g for g in guests if not g.is_placeholder]
        adults = sum(1 for g in listed if g.is_adult)
        children = len(listed) - adults

        price = adults * room.adult_price + children * room.child_price + room.adult_price

        if (all_inclusive or breakfast) and rules is None:
            raise ConfigurationMissingError("Price rules are required for add-ons")
        if all_inclusive:
            price += rules.all_inclusive_price
        elif breakfast:
            price += rules.breakfast_price

        return price

    async def calculate_total(
        self,
        room: Room,
        guests: Iterable[Guest],
        date_range: DateRange,
        all_inclusive: bool,
        breakfast: bool
    ) -> Decimal:
        """Calculate the price of the whole stay"""
        rules = None
        if all_inclusive or breakfast:
            rules = await self.resolve_price_rules()

        nightly = self.price_for_night(room, guests, all_inclusive, breakfast, rules)
        return nightly * date_range.nights()


class RosterChanges(BaseModel):
    """Guests to insert, overwrite and delete for one reservation"""
    to_add: List[Guest] = []
    to_update: List[Guest] = []
    to_remove: List[Guest] = []
    roster: List[Guest] = []


class GuestRosterService:
    """Service reconciling submitted guest lists with persisted rosters"""

    def __init__(self, guest_repo: GuestRepository):
        self.guest_repo = guest_repo

    @staticmethod
    def plan(
        reservation_id: UUID,
        persisted: List[Guest],
        submitted: List[Guest]
    ) -> RosterChanges:
        """Classify every guest by identity.

        A submitted guest is existing only when it carries an id that is
        already persisted; everything else is new and gets an id if it
        has none. Persisted guests missing from the submission go away.
        """
        persisted_ids = {g.guest_id for g in persisted}
        submitted_ids = {g.guest_id for g in submitted if g.has_identity}

        changes = RosterChanges(
            to_remove=[g for g in persisted if g.guest_id not in submitted_ids]
        )

        for guest in submitted:
            is_existing = guest.has_identity and guest.guest_id in persisted_ids
            stamped = guest.model_copy(update={
                "guest_id": guest.guest_id or uuid4(),
                "reservation_id": reservation_id,
            })
            if is_existing:
                changes.to_update.append(stamped)
            else:
                changes.to_add.append(stamped)
            changes.roster.append(stamped)

        return changes

    async def check_identities(
        self,
        reservation_id: Optional[UUID],
        submitted: List[Guest]
    ) -> None:
        """Reject supplied guest ids that repeat or belong to another reservation.

        ``reservation_id`` is None for a reservation not persisted yet, in
        which case every supplied id must be unknown.
        """
        seen = set()
        for guest in submitted:
            if not guest.has_identity:
                continue
            if guest.guest_id in seen:
                raise GuestIdentityError(f"Guest {guest.guest_id} is listed twice")
            seen.add(guest.guest_id)

            stored = await self.guest_repo.find_by_id(guest.guest_id)
            if stored is not None and (reservation_id is None or stored.reservation_id != reservation_id):
                raise GuestIdentityError(
                    f"Guest {guest.guest_id} belongs to another reservation"
                )

    async def sync(
        self,
        reservation_id: UUID,
        submitted: List[Guest],
        uow: AbstractUnitOfWork
    ) -> List[Guest]:
        """Stage the roster changes in ``uow`` and return the new roster"""
        persisted = await self.guest_repo.find_by_reservation_id(reservation_id)
        changes = self.plan(reservation_id, persisted, list(submitted))

        uow.remove_guests(changes.to_remove)
        uow.add_guests(changes.to_add)
        uow.update_guests(changes.to_update)

        logger.debug(
            "Roster of reservation %s: %d added, %d updated, %d removed",
            reservation_id, len(changes.to_add), len(changes.to_update), len(changes.to_remove)
        )
        return changes.roster


class ReservationService:
    """Service for Reservation business use cases"""

    def __init__(self,
                 repository: ReservationRepository,
                 room_repo: RoomRepository,
                 guest_repo: GuestRepository,
                 setting_repo: SettingRepository,
                 user_repo: UserRepository,
                 uow_factory: Callable[[], AbstractUnitOfWork],
                 locks: Optional[RoomLocks] = None):
        self.repository = repository
        self.room_repo = room_repo
        self.guest_repo = guest_repo
        self.user_repo = user_repo
        self.uow_factory = uow_factory
        self.locks = locks or RoomLocks()

        self.availability = AvailabilityService(repository, room_repo)
        self.pricing = PricingService(setting_repo)
        self.roster = GuestRosterService(guest_repo)

    # ==================== VALIDATION HELPERS ====================
    async def _validate_window(
        self,
        room_id: str,
        accommodation_date: date,
        release_date: date,
        reservation_id: Optional[UUID] = None
    ) -> DateRange:
        if accommodation_date >= release_date:
            raise InvalidWindowError("Release date must be after accommodation date")
        if accommodation_date < date.today():
            raise InvalidWindowError("Accommodation date must be today or later")

        if not await self.availability.is_available(
            room_id, accommodation_date, release_date, reservation_id
        ):
            raise SchedulingConflictError(
                f"Room {room_id} is not available from {accommodation_date} to {release_date}"
            )
        return DateRange(accommodation_date=accommodation_date, release_date=release_date)

    @staticmethod
    def _check_capacity(room: Room, guests: List[Guest]) -> None:
        occupants = sum(1 for g in guests if not g.is_placeholder) + 1
        if occupants > room.capacity:
            raise CapacityExceededError(
                f"Room {room.room_id} holds {room.capacity} people, {occupants} requested"
            )

    async def _authorize(self, reservation: Reservation, actor_id: UUID) -> None:
        if reservation.is_owned_by(actor_id):
            return
        if await self.user_repo.has_elevated_role(actor_id):
            return
        raise UnauthorizedError(
            f"User {actor_id} cannot change reservation {reservation.reservation_id}"
        )

    # ==================== COMMANDS ====================
    async def create_reservation(
        self,
        room_id: str,
        accommodation_date: date,
        release_date: date,
        all_inclusive: bool,
        breakfast: bool,
        guests: List[Guest],
        user_id: UUID
    ) -> Reservation:
        """Book a room for the window and persist the reservation with its guests"""
        room = await self.room_repo.find_by_id(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found")

        guests = list(guests)
        try:
            async with self.locks.for_room(room_id):
                date_range = await self._validate_window(room_id, accommodation_date, release_date)
                self._check_capacity(room, guests)
                await self.roster.check_identities(None, guests)
                price = await self.pricing.calculate_total(
                    room, guests, date_range, all_inclusive, breakfast
                )

                reservation = Reservation.book(
                    room_id=room_id,
                    user_id=user_id,
                    date_range=date_range,
                    all_inclusive=all_inclusive,
                    breakfast=breakfast,
                    price=price,
                    guests=guests
                )
                async with self.uow_factory() as uow:
                    uow.add_reservation(reservation)
        except (InvalidWindowError, SchedulingConflictError, CapacityExceededError,
                GuestIdentityError) as e:
            logger.warning("Rejected booking of room %s: %s", room_id, e)
            raise

        logger.info(
            "Booked room %s from %s to %s as reservation %s",
            room_id, accommodation_date, release_date, reservation.reservation_id
        )
        return reservation

    async def update_reservation(
        self,
        reservation_id: UUID,
        accommodation_date: date,
        release_date: date,
        all_inclusive: bool,
        breakfast: bool,
        guests: List[Guest],
        actor_id: UUID
    ) -> bool:
        """Replace the window, add-ons, price and roster of a reservation"""
        current = await self.repository.find_by_id(reservation_id)
        if current is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")

        guests = list(guests)
        async with self.locks.for_room(current.room_id):
            reservation = await self.repository.find_by_id(reservation_id)
            if reservation is None:
                raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
            room = await self.room_repo.find_by_id(reservation.room_id)
            if room is None:
                raise RoomNotFoundError(f"Room {reservation.room_id} not found")

            try:
                date_range = await self._validate_window(
                    room.room_id, accommodation_date, release_date, reservation_id
                )
                self._check_capacity(room, guests)
                await self._authorize(reservation, actor_id)
                await self.roster.check_identities(reservation_id, guests)
            except (UnauthorizedError, InvalidWindowError, SchedulingConflictError,
                    CapacityExceededError, GuestIdentityError) as e:
                logger.warning("Rejected update of reservation %s: %s", reservation_id, e)
                raise

            price = await self.pricing.calculate_total(
                room, guests, date_range, all_inclusive, breakfast
            )

            async with self.uow_factory() as uow:
                roster = await self.roster.sync(reservation_id, guests, uow)
                reservation.reschedule(
                    room_id=room.room_id,
                    user_id=actor_id,
                    date_range=date_range,
                    all_inclusive=all_inclusive,
                    breakfast=breakfast,
                    price=price,
                    guests=roster
                )
                uow.replace_reservation(reservation)

        logger.info("Updated reservation %s (version %d)", reservation_id, reservation.version)
        return True

    async def update_clients_for_reservation(
        self,
        reservation_id: UUID,
        guests: List[Guest]
    ) -> List[Guest]:
        """Reconcile the guest roster of a reservation on its own"""
        reservation = await self.repository.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")

        guests = list(guests)
        async with self.locks.for_room(reservation.room_id):
            await self.roster.check_identities(reservation_id, guests)
            async with self.uow_factory() as uow:
                return await self.roster.sync(reservation_id, guests, uow)

    async def delete_reservation(self, reservation_id: UUID) -> bool:
        """Delete a reservation and its guests; False when it does not exist"""
        reservation = await self.repository.find_by_id(reservation_id)
        if reservation is None:
            return False

        async with self.locks.for_room(reservation.room_id):
            if await self.repository.find_by_id(reservation_id) is None:
                return False

            guests = await self.guest_repo.find_by_reservation_id(reservation_id)
            async with self.uow_factory() as uow:
                uow.remove_guests(guests)
                uow.remove_reservation(reservation_id)

        logger.info("Deleted reservation %s with %d guests", reservation_id, len(guests))
        return True

    # ==================== QUERIES ====================
    async def get_reservation(
        self,
        reservation_id: UUID,
        projection: Callable[[Reservation], T] = _as_is
    ) -> Optional[T]:
        """Get reservation by ID"""
        reservation = await self.repository.find_by_id(reservation_id)
        return projection(reservation) if reservation else None

    async def get_reservations_for_user(
        self,
        user_id: UUID,
        projection: Callable[[Reservation], T] = _as_is
    ) -> List[T]:
        """Get the user's reservations, latest accommodation date first"""
        return [projection(r) for r in await self.repository.find_by_user_id(user_id)]

    async def get_for_user_on_page(
        self,
        user_id: UUID,
        page: int,
        elements_on_page: int,
        projection: Callable[[Reservation], T] = _as_is
    ) -> List[T]:
        reservations = await self.get_reservations_for_user(user_id, projection)
        return get_page_items(reservations, page, elements_on_page)

    async def get_all(
        self,
        projection: Callable[[Reservation], T] = _as_is
    ) -> List[T]:
        """Get all reservations, earliest release date first"""
        return [projection(r) for r in await self.repository.find_all()]

    async def get_all_on_page(
        self,
        page: int,
        elements_on_page: int,
        projection: Callable[[Reservation], T] = _as_is
    ) -> List[T]:
        return get_page_items(await self.get_all(projection), page, elements_on_page)

    async def count_all_reservations(self) -> int:
        return await self.repository.count()
