from sqlalchemy import BigInteger, Float, ForeignKey, Index, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column
from kts.models.base import Base


class DailyUsageRecord(Base):
    """Immutable daily snapshot, keyed by derive("daily_usage", fingerprint, timestamp)."""

    address: Mapped[str] = mapped_column(String(64), primary_key=True)
    device: Mapped[str] = mapped_column(ForeignKey("devicerecord.address"))
    timestamp: Mapped[int] = mapped_column(BigInteger)
    avg_cpu_usage: Mapped[float] = mapped_column(Float)
    avg_memory_usage: Mapped[float] = mapped_column(Float)
    top_processes: Mapped[bytes] = mapped_column(LargeBinary(160))
    data_hash: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[int] = mapped_column(BigInteger)

    __table_args__ = (
        Index("ix_dailyusage_device_timestamp", "device", "timestamp", unique=True),
    )
