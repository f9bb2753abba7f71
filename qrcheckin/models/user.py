from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from qrcheckin.config.table_names import TableNames
from qrcheckin.models.base import Base, TimeStamp


class User(Base, TimeStamp):
    """A person known to the organisation, shared by every event."""

    __tablename__ = TableNames.USERS.value

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
