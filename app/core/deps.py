from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import decode_access_token
from app.db.session import get_db
from app.schemas.token import Principal, RoleEnum, TokenPayload
from app.services.course_directory import CourseDirectory

bearer_scheme = HTTPBearer(auto_error=False)

# Alias de roles que emite la plataforma
ROLE_ALIASES = {"super_admin": RoleEnum.admin.value}


def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """
    Dependencia para obtener el principal actual desde el token JWT.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    try:
        payload = decode_access_token(credentials.credentials)
        token_data = TokenPayload(**payload)
        role = ROLE_ALIASES.get(token_data.role, token_data.role)
        principal = Principal(id=int(token_data.sub), role=role)
    except (JWTError, PydanticValidationError, TypeError, ValueError):
        raise AuthenticationError("Could not validate credentials")

    request.state.user_id = principal.id
    return principal


def require_roles(*roles: RoleEnum):
    """
    Fábrica de dependencias que restringe un endpoint a ciertos roles.
    """
    allowed = {RoleEnum(r) for r in roles}

    def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise AuthorizationError(
                f"Role '{principal.role.value}' cannot perform this operation"
            )
        return principal

    return checker


get_student = require_roles(RoleEnum.student)
get_staff_or_admin = require_roles(RoleEnum.staff, RoleEnum.admin)
get_admin = require_roles(RoleEnum.admin)


def get_course_directory(db: Session = Depends(get_db)) -> CourseDirectory:
    return CourseDirectory(db)


@dataclass
class Pagination:
    page: int
    page_size: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size


def get_pagination(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> Pagination:
    return Pagination(page=page, page_size=page_size)
