"""Initial schema with PostGIS extension, users, stores and products.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from geoalchemy2 import Geometry


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Enable PostGIS extension
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column(
            "type",
            sa.Enum("CLIENT", "OWNER", "ADMIN", name="usertype"),
            default="CLIENT",
            nullable=False,
        ),
        sa.Column("address", sa.String(255), default=""),
        sa.Column(
            "coordinates",
            Geometry("POINT", srid=4326, spatial_index=False),
            nullable=True,
        ),
        sa.Column("radius_km", sa.Float, default=5.0, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_users_coordinates",
        "users",
        ["coordinates"],
        postgresql_using="gist",
    )
    op.create_index("idx_users_type", "users", ["type"])

    # ── stores ────────────────────────────────────────────────────────
    op.create_table(
        "stores",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "owner_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("address", sa.String(255), default=""),
        sa.Column("description", sa.Text, default=""),
        sa.Column(
            "coordinates",
            Geometry("POINT", srid=4326, spatial_index=False),
            nullable=True,
        ),
        sa.Column(
            "status",
            sa.Enum("PENDING", "ACCEPTED", "DECLINED", name="storestatus"),
            default="PENDING",
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_stores_coordinates",
        "stores",
        ["coordinates"],
        postgresql_using="gist",
    )
    op.create_index("idx_stores_status", "stores", ["status"])
    op.create_index("idx_stores_owner", "stores", ["owner_id"])

    # ── products ──────────────────────────────────────────────────────
    op.create_table(
        "products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "store_id",
            sa.Integer,
            sa.ForeignKey("stores.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column("discount", sa.Float, default=0.0, nullable=False),
        sa.Column("description", sa.Text, default=""),
        sa.Column("image", sa.String(500), default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_products_store", "products", ["store_id"])


def downgrade() -> None:
    op.drop_table("products")
    op.drop_table("stores")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS storestatus")
    op.execute("DROP TYPE IF EXISTS usertype")
