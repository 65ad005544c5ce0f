from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column
from kts.models.base import Base


class DeviceRecord(Base):
    """One row per device fingerprint, keyed by derive("device", fingerprint)."""

    address: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner: Mapped[str] = mapped_column(String(64), index=True)
    device_hash: Mapped[str] = mapped_column(String(64), unique=True)
    registered_at: Mapped[int] = mapped_column(BigInteger)
    certificate_issued: Mapped[bool] = mapped_column(Boolean, default=False)
