"""Domain Enums"""
from enum import Enum


class UserRole(str, Enum):
    USER = "USER"
    EMPLOYEE = "EMPLOYEE"
    ADMIN = "ADMIN"
