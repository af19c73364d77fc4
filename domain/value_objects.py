"""Domain Value Objects"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date
from decimal import Decimal

SECONDS_PER_DAY = Decimal(86400)


class DateRange(BaseModel):
    """Value Object for the half-open stay interval [accommodation, release)"""
    model_config = ConfigDict(frozen=True)

    accommodation_date: date
    release_date: date

    @field_validator('release_date')
    @classmethod
    def release_after_accommodation(cls, v, info):
        accommodation = info.data.get('accommodation_date')
        if accommodation is not None and v <= accommodation:
            raise ValueError('Release date must be after accommodation date')
        return v

    def nights(self) -> Decimal:
        """Length of the stay in days, fractional parts kept"""
        delta = self.release_date - self.accommodation_date
        return Decimal(str(delta.total_seconds())) / SECONDS_PER_DAY

    def conflicts_with(self, other: "DateRange") -> bool:
        """Check whether this stored period blocks the candidate ``other``.

        A candidate that starts exactly on this period's release date does
        not conflict; a candidate that ends exactly on this period's
        accommodation date does.
        """
        s, e = self.accommodation_date, self.release_date
        start, end = other.accommodation_date, other.release_date
        return (
            (s >= start and s <= end) or
            (e > start and e <= end) or
            (s >= start and e <= end) or
            (s <= start and e >= end)
        )

    def contains(self, day: date) -> bool:
        return self.accommodation_date <= day < self.release_date


class PriceRules(BaseModel):
    """Flat add-on surcharges, each added to the nightly price of every night"""
    model_config = ConfigDict(frozen=True)

    all_inclusive_price: Decimal = Field(ge=0)
    breakfast_price: Decimal = Field(ge=0)
