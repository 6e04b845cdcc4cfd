import enum
from sqlalchemy import String, Integer, Enum, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from civicfix.db.base import Base

class Role(str, enum.Enum):
    CITIZEN = "citizen"

    CITY_MANAGER = "city_manager"
    INFRA_MANAGER = "infra_manager"
    ISSUE_RESOLVER = "issue_resolver"
    CONTRACTOR = "contractor"

    ADMIN = "admin"

ROLE_LABELS = {
    Role.CITIZEN: "Citizen",
    Role.CITY_MANAGER: "City Manager",
    Role.INFRA_MANAGER: "Infra Manager",
    Role.ISSUE_RESOLVER: "Issue Resolver",
    Role.CONTRACTOR: "Contractor",
    Role.ADMIN: "Administrator",
}

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(120))
    username: Mapped[str] = mapped_column(String(80), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), default="")
    password_hash: Mapped[str] = mapped_column(String(255))

    role: Mapped[Role] = mapped_column(Enum(Role), index=True, default=Role.CITIZEN)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    @property
    def role_label(self) -> str:
        return ROLE_LABELS.get(self.role, self.role.value)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Unknown"
