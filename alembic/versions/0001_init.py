"""registry schema"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "devicerecord",
        sa.Column("address", sa.String(length=64), primary_key=True),
        sa.Column("owner", sa.String(length=64), index=True),
        sa.Column("device_hash", sa.String(length=64), unique=True),
        sa.Column("registered_at", sa.BigInteger()),
        sa.Column("certificate_issued", sa.Boolean(), server_default=sa.false()),
    )

    op.create_table(
        "dailyusagerecord",
        sa.Column("address", sa.String(length=64), primary_key=True),
        sa.Column("device", sa.String(length=64), sa.ForeignKey("devicerecord.address")),
        sa.Column("timestamp", sa.BigInteger()),
        sa.Column("avg_cpu_usage", sa.Float()),
        sa.Column("avg_memory_usage", sa.Float()),
        sa.Column("top_processes", sa.LargeBinary(length=160)),
        sa.Column("data_hash", sa.String(length=64)),
        sa.Column("created_at", sa.BigInteger()),
    )
    op.create_index("ix_dailyusage_device_timestamp", "dailyusagerecord", ["device", "timestamp"], unique=True)

    op.create_table(
        "ledgerevent",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("kind", sa.String(length=32)),
        sa.Column("address", sa.String(length=64)),
        sa.Column("device_hash", sa.String(length=64), index=True),
        sa.Column("owner", sa.String(length=64)),
        sa.Column("detail", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_ledgerevent_device_created", "ledgerevent", ["device_hash", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_ledgerevent_device_created", table_name="ledgerevent")
    op.drop_table("ledgerevent")
    op.drop_index("ix_dailyusage_device_timestamp", table_name="dailyusagerecord")
    op.drop_table("dailyusagerecord")
    op.drop_table("devicerecord")
