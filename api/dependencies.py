"""API Dependencies - Wiring and Authentication"""
from decimal import Decimal
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from application.services import ReservationService, AvailabilityService
from domain.auth import User, UserInDB
from domain.entities import Room
from domain.enums import UserRole
from infrastructure.config import DEFAULT_SETTINGS
from infrastructure.locks import RoomLocks
from infrastructure.repositories.in_memory_repositories import (
    InMemoryDatabase, InMemoryRoomRepository, InMemoryReservationRepository,
    InMemoryGuestRepository, InMemorySettingRepository, InMemoryUserRepository,
    InMemoryUnitOfWork
)
from infrastructure.security import get_password_hash, decode_access_token
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Demo accounts; registration is handled by the account service in production
DEMO_USERS = {
    "admin": {
        "username": "admin",
        "full_name": "Admin User",
        "email": "admin@example.com",
        "plain_password": "admin123",
        "disabled": False,
        "roles": [UserRole.ADMIN],
        "user_id": "123e4567-e89b-12d3-a456-426614174000"
    },
    "guest": {
        "username": "guest",
        "full_name": "Guest User",
        "email": "guest@example.com",
        "plain_password": "guest123",
        "disabled": False,
        "roles": [UserRole.USER],
        "user_id": "123e4567-e89b-12d3-a456-426614174001"
    }
}

DEMO_ROOMS = [
    Room(room_id="R101", number=101, capacity=2, adult_price=Decimal("100"), child_price=Decimal("50")),
    Room(room_id="R102", number=102, capacity=4, adult_price=Decimal("100"), child_price=Decimal("50")),
    Room(room_id="R201", number=201, capacity=6, adult_price=Decimal("150"), child_price=Decimal("75")),
]

db = InMemoryDatabase()
room_locks = RoomLocks()

room_repo = InMemoryRoomRepository(db)
reservation_repo = InMemoryReservationRepository(db)
guest_repo = InMemoryGuestRepository(db)
setting_repo = InMemorySettingRepository(db)
user_repo = InMemoryUserRepository(db)


def seed_demo_data(database: InMemoryDatabase) -> None:
    """Fill an empty database with demo rooms, settings and users"""
    for room in DEMO_ROOMS:
        database.rooms[room.room_id] = room
    database.settings.update(DEFAULT_SETTINGS)
    for record in DEMO_USERS.values():
        user_dict = record.copy()
        user_dict["hashed_password"] = get_password_hash(user_dict.pop("plain_password"))
        user = UserInDB(**user_dict)
        database.users[user.user_id] = user


seed_demo_data(db)


def get_reservation_service() -> ReservationService:
    return ReservationService(
        reservation_repo,
        room_repo,
        guest_repo,
        setting_repo,
        user_repo,
        uow_factory=lambda: InMemoryUnitOfWork(db),
        locks=room_locks
    )


def get_availability_service() -> AvailabilityService:
    return AvailabilityService(reservation_repo, room_repo)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    username = decode_access_token(token)
    if username is None:
        raise credentials_exception
    token_data = TokenData(username=username)

    user = await user_repo.find_by_username(token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def ensure_owner_or_staff(owner_id: UUID, current_user: User) -> None:
    if owner_id != current_user.user_id and not current_user.has_elevated_role():
        raise HTTPException(status_code=403, detail="Not allowed to access this reservation")
