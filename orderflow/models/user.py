"""User row model. The engine only reads users to address notifications."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class UserRecord(BaseModel):
    """Users table row."""

    model_config = ConfigDict(extra="ignore")

    id: str
    role: UserRole = UserRole.USER
    company_name: str = ""
    store_name: str = ""
    email: str = ""
    status: str = "active"

    @property
    def is_active_admin(self) -> bool:
        return self.role == UserRole.ADMIN and self.status == "active"
