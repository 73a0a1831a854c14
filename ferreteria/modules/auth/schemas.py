from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    EMPLEADO = "empleado"
    INVENTORY_MANAGER = "inventory_manager"


UNKNOWN_ROLE = "Desconocido"
UNKNOWN_USER_NAME = "Usuario Desconocido"


class AuthContext(BaseModel):
    user_id: UUID
    user_name: Optional[str] = None
    user_role: Optional[str] = None
