import enum

from pydantic import BaseModel


class RoleEnum(str, enum.Enum):
    student = "student"
    staff = "staff"
    admin = "admin"


class TokenPayload(BaseModel):
    """
    Schema para el payload del token JWT emitido por el proveedor de identidad.
    """
    sub: str
    role: str


class Principal(BaseModel):
    """
    Identidad del llamador ya verificada: id numérico y rol.
    """
    id: int
    role: RoleEnum

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin

    @property
    def is_staff(self) -> bool:
        return self.role == RoleEnum.staff

    @property
    def is_student(self) -> bool:
        return self.role == RoleEnum.student
