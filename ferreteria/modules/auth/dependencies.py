"""
Dependencias de autenticación para FastAPI.
"""
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import jwt

from ferreteria.database.database import get_db
from ferreteria.modules.auth.service import get_user_by_id
from ferreteria.modules.auth.schemas import AuthContext, UserRole
from ferreteria.modules.auth.utils import decode_access_token

# Security scheme
security = HTTPBearer()


class AuthDependencies:
    """Dependencias de autenticación reutilizables."""

    @staticmethod
    def get_auth_context(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> AuthContext:
        """
        Obtener el usuario autenticado desde el token JWT.
        El rol y el nombre se leen de la base de datos, no del token.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No se pudieron validar las credenciales",
            headers={"WWW-Authenticate": "Bearer"},
        )

        try:
            payload = decode_access_token(credentials.credentials)
            user_id = UUID(str(payload.get("sub")))
        except (jwt.PyJWTError, ValueError):
            raise credentials_exception

        user = get_user_by_id(db, user_id)
        if user is None:
            raise credentials_exception

        return AuthContext(user_id=user.id, user_name=user.nombre, user_role=user.rol)

    @staticmethod
    def require_role(allowed_roles: list[str]):
        """
        Dependencia para requerir roles específicos.
        """
        def role_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if auth_context.user_role not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Se requiere uno de estos roles: {', '.join(allowed_roles)}"
                )
            return auth_context
        return role_checker

    @staticmethod
    def require_admin():
        return AuthDependencies.require_role([UserRole.ADMIN.value])

    @staticmethod
    def require_seller():
        """Roles que pueden registrar ventas."""
        return AuthDependencies.require_role([UserRole.ADMIN.value, UserRole.EMPLEADO.value])

    @staticmethod
    def require_inventory_writer():
        return AuthDependencies.require_role([UserRole.ADMIN.value, UserRole.INVENTORY_MANAGER.value])

    @staticmethod
    def require_any_role():
        return AuthDependencies.require_role([role.value for role in UserRole])


# Instancias de dependencias
get_auth_context = AuthDependencies.get_auth_context
require_admin = AuthDependencies.require_admin
require_seller = AuthDependencies.require_seller
require_inventory_writer = AuthDependencies.require_inventory_writer
require_any_role = AuthDependencies.require_any_role
