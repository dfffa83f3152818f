from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from event_service.models.base import Base, CreatedMixin


class ApiKey(Base, CreatedMixin):
    __tablename__ = "api_keys"

    # sha256 hex digest of the client key plus the API secret
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    appid: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
