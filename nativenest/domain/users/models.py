from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Identity, Text, text, TIMESTAMP
from nativenest.core.database import Base
from datetime import datetime, timezone


class RoleName:
    ADMIN = "ADMIN"
    BUILDER = "BUILDER"
    BUYER = "BUYER"


class Role(Base):
    __tablename__ = 'roles'

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    users: Mapped[list["User"]] = relationship(secondary="user_roles", back_populates="roles")


class User(Base):
    """Any principal of the marketplace; builders and buyers are told apart by role."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    # E.164, the key buyers are looked up by at stall check-in
    phone_number: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True),
                                                 default=lambda: datetime.now(timezone.utc),
                                                 server_default=text("timezone('utc', now())"),
                                                 nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    roles: Mapped[list["Role"]] = relationship(secondary="user_roles", back_populates="users", lazy="selectin")
