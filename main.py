from fastapi import FastAPI, HTTPException, Depends
from uuid import UUID
from datetime import timedelta
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Reservation
    CreateReservationRequest, UpdateReservationRequest, UpdateGuestsRequest,
    ReservationResponse, GuestResponse, CountResponse,
    # Availability
    CheckAvailabilityRequest, RoomResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import (
    user_repo, get_current_active_user, ensure_owner_or_staff,
    get_reservation_service, get_availability_service
)
from infrastructure.config import ACCESS_TOKEN_EXPIRE_MINUTES
from infrastructure.logging_config import configure_logging
from infrastructure.security import verify_password, create_access_token
from domain.auth import User
from domain.entities import Reservation, Guest
from domain.errors import (
    BookingError, GuestIdentityError, InvalidWindowError, CapacityExceededError,
    UnauthorizedError, RoomNotFoundError, ReservationNotFoundError, SchedulingConflictError,
    ConfigurationMissingError
)

from application.services import ReservationService, AvailabilityService

configure_logging()

app = FastAPI(
    title="Hotel Booking API",
    description="Room reservations with conflict detection, pricing and guest rosters",
    version="1.0.0"
)

ERROR_STATUS = {
    InvalidWindowError: 400,
    CapacityExceededError: 400,
    UnauthorizedError: 403,
    RoomNotFoundError: 404,
    ReservationNotFoundError: 404,
    SchedulingConflictError: 409,
    GuestIdentityError: 409,
    ConfigurationMissingError: 500,
}

# ============================================================================
# HEALTH
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = await user_repo.find_by_username(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(
        data={"sub": user.username},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Book a room"""
    try:
        reservation = await service.create_reservation(
            room_id=request.room_id,
            accommodation_date=request.accommodation_date,
            release_date=request.release_date,
            all_inclusive=request.all_inclusive,
            breakfast=request.breakfast,
            guests=[g.to_entity() for g in request.guests],
            user_id=current_user.user_id
        )
        return _reservation_to_response(reservation)
    except BookingError as e:
        raise _to_http_error(e)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_all_reservations(
    page: Optional[int] = None,
    size: int = 10,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get all reservations, earliest release first (staff only)"""
    if not current_user.has_elevated_role():
        raise HTTPException(status_code=403, detail="Staff role required")
    try:
        if page is None:
            return await service.get_all(_reservation_to_response)
        return await service.get_all_on_page(page, size, _reservation_to_response)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/reservations/mine", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_my_reservations(
    page: Optional[int] = None,
    size: int = 10,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get the current user's reservations, latest stay first"""
    try:
        if page is None:
            return await service.get_reservations_for_user(current_user.user_id, _reservation_to_response)
        return await service.get_for_user_on_page(
            current_user.user_id, page, size, _reservation_to_response
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/reservations/count", response_model=CountResponse, tags=["Reservations"])
async def count_reservations(
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Count all reservations"""
    return {"count": await service.count_all_reservations()}

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    reservation = await service.get_reservation(reservation_id, _reservation_to_response)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    ensure_owner_or_staff(reservation.user_id, current_user)
    return reservation

@app.put("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def update_reservation(
    reservation_id: UUID,
    request: UpdateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Change the window, add-ons and guests of a reservation"""
    try:
        await service.update_reservation(
            reservation_id=reservation_id,
            accommodation_date=request.accommodation_date,
            release_date=request.release_date,
            all_inclusive=request.all_inclusive,
            breakfast=request.breakfast,
            guests=[g.to_entity() for g in request.guests],
            actor_id=current_user.user_id
        )
    except BookingError as e:
        raise _to_http_error(e)
    return await service.get_reservation(reservation_id, _reservation_to_response)

@app.put("/api/reservations/{reservation_id}/guests", response_model=List[GuestResponse], tags=["Reservations"])
async def update_reservation_guests(
    reservation_id: UUID,
    request: UpdateGuestsRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Replace the guest roster of a reservation"""
    reservation = await service.get_reservation(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    ensure_owner_or_staff(reservation.user_id, current_user)
    try:
        roster = await service.update_clients_for_reservation(
            reservation_id, [g.to_entity() for g in request.guests]
        )
    except BookingError as e:
        raise _to_http_error(e)
    return [_guest_to_response(g) for g in roster]

@app.delete("/api/reservations/{reservation_id}", status_code=204, tags=["Reservations"])
async def delete_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Delete a reservation and its guests"""
    reservation = await service.get_reservation(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    ensure_owner_or_staff(reservation.user_id, current_user)
    if not await service.delete_reservation(reservation_id):
        raise HTTPException(status_code=404, detail="Reservation not found")

# ============================================================================
# AVAILABILITY ENDPOINTS
# ============================================================================

@app.post("/api/availability/check", tags=["Availability"])
async def check_availability(
    request: CheckAvailabilityRequest,
    service: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Check whether a room is free for a window"""
    available = await service.is_available(
        room_id=request.room_id,
        accommodation_date=request.accommodation_date,
        release_date=request.release_date,
        reservation_id=request.reservation_id
    )
    return {"available": available}

@app.get("/api/rooms/free", response_model=List[RoomResponse], tags=["Availability"])
async def get_free_rooms(
    service: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get rooms nobody occupies today"""
    rooms = await service.get_free_rooms_at_present()
    return [RoomResponse(**room.model_dump()) for room in rooms]

@app.get("/api/rooms/free/count", response_model=CountResponse, tags=["Availability"])
async def count_free_rooms(
    service: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Count rooms nobody occupies today"""
    return {"count": await service.count_free_rooms_at_present()}

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _to_http_error(error: BookingError) -> HTTPException:
    """Map a booking failure onto an HTTP error"""
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))

def _guest_to_response(guest: Guest) -> GuestResponse:
    return GuestResponse(
        guest_id=guest.guest_id,
        full_name=guest.full_name,
        is_adult=guest.is_adult
    )

def _reservation_to_response(reservation: Reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        room_id=reservation.room_id,
        user_id=reservation.user_id,
        accommodation_date=reservation.accommodation_date,
        release_date=reservation.release_date,
        all_inclusive=reservation.all_inclusive,
        breakfast=reservation.breakfast,
        price=reservation.price,
        guests=[_guest_to_response(g) for g in reservation.guests],
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
