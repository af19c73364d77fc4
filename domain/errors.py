"""Domain Errors - Booking failures reported to callers"""


class BookingError(ValueError):
    """Base class for every rejected booking operation"""


class InvalidWindowError(BookingError):
    """Accommodation date is in the past or not before the release date"""


class RoomNotFoundError(BookingError):
    pass


class ReservationNotFoundError(BookingError):
    pass


class SchedulingConflictError(BookingError):
    """Requested window overlaps another reservation of the same room"""


class CapacityExceededError(BookingError):
    pass


class UnauthorizedError(BookingError):
    """Actor neither owns the reservation nor holds an elevated role"""


class ConfigurationMissingError(BookingError):
    """A surcharge setting is not configured or cannot be parsed"""


class GuestIdentityError(BookingError):
    """A submitted guest id belongs to another reservation or repeats"""
