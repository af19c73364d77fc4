"""Runtime configuration read from environment variables"""
import os

# Security
SECRET_KEY = os.getenv("BOOKING_SECRET_KEY", "your-secret-key-keep-it-secret")
ALGORITHM = os.getenv("BOOKING_JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("BOOKING_ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Logging
LOG_LEVEL = os.getenv("BOOKING_LOG_LEVEL", "INFO")

# Settings store keys for the add-on surcharges
ALL_INCLUSIVE_PRICE_KEY = "AllInclusivePrice"
BREAKFAST_PRICE_KEY = "BreakfastPrice"

DEFAULT_SETTINGS = {
    ALL_INCLUSIVE_PRICE_KEY: os.getenv("BOOKING_ALL_INCLUSIVE_PRICE", "40"),
    BREAKFAST_PRICE_KEY: os.getenv("BOOKING_BREAKFAST_PRICE", "15"),
}
