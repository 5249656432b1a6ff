from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from gridcrud.db.session import Base
from gridcrud.models.common import IntegerIdMixin, TimestampMixin


class User(Base, IntegerIdMixin, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    real_name: Mapped[str] = mapped_column(String(200), nullable=False)
    id_card_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    nick_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
