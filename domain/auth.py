"""Domain Entities - Auth"""
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from typing import List, Optional

from domain.enums import UserRole


class User(BaseModel):
    """User Entity"""
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(default_factory=uuid4)
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool = False
    roles: List[UserRole] = [UserRole.USER]

    def has_elevated_role(self) -> bool:
        """Any role other than the base USER role counts as staff"""
        return any(role != UserRole.USER for role in self.roles)


class UserInDB(User):
    """User with hashed password for DB storage"""
    hashed_password: str
