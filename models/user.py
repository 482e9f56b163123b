from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum

class UserRole(str, Enum):
    ADMIN = "admin"
    BARBER = "barber"

class User(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole = UserRole.BARBER
    barber_id: Optional[str] = None  # set for barber accounts
    created_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
