"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "islands",
        sa.Column("map_id", sa.String(length=64), nullable=False),
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("x", sa.Integer(), nullable=False),
        sa.Column("y", sa.Integer(), nullable=False),
        sa.Column(
            "size",
            sa.Enum("small", "medium", "large", "giant", name="islandsize"),
            nullable=False,
        ),
        sa.Column("island_level", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.Column("owner_nation", sa.String(length=32), nullable=True),
        sa.Column("nation", sa.String(length=32), nullable=True),
        sa.Column("biome", sa.String(length=32), nullable=True),
        sa.Column("biome_frame", sa.Integer(), nullable=True),
        sa.Column(
            "occupation_status",
            sa.Enum("capital", "sacred", "occupied", "demolished", name="occupationstatus"),
            nullable=True,
        ),
        sa.Column("building_slots", sa.JSON(), nullable=True),
        sa.Column("buildings", sa.JSON(), nullable=False),
        sa.Column("shop_pricing", sa.JSON(), nullable=True),
        sa.Column("shop_inventory", sa.JSON(), nullable=False),
        sa.Column("hot_spring_price", sa.Integer(), nullable=True),
        sa.Column("construction_status", sa.String(length=20), nullable=True),
        sa.Column("demolished_at", sa.BigInteger(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("map_id", "id"),
    )
    op.create_index(op.f("ix_islands_owner_id"), "islands", ["owner_id"], unique=False)
    op.create_index(
        op.f("ix_islands_construction_status"), "islands", ["construction_status"], unique=False
    )

    op.create_table(
        "harvest_cursors",
        sa.Column("map_id", sa.String(length=64), nullable=False),
        sa.Column("island_id", sa.String(length=128), nullable=False),
        sa.Column("player_id", sa.String(length=64), nullable=False),
        sa.Column("last_collected_at", sa.BigInteger(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("map_id", "island_id", "player_id"),
    )

    op.create_table(
        "nation_treasuries",
        sa.Column("nation", sa.String(length=32), nullable=False),
        sa.Column("treasury_amount", sa.BigInteger(), nullable=False),
        sa.Column("tax_rate_bps", sa.Integer(), nullable=False),
        sa.Column("grant_multiplier", sa.Float(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("nation"),
    )

    op.create_table(
        "currency_balances",
        sa.Column("player_id", sa.String(length=64), nullable=False),
        sa.Column("currency", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("player_id", "currency"),
    )

    op.create_table(
        "player_profiles",
        sa.Column("player_id", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("nation", sa.String(length=32), nullable=True),
        sa.Column("race", sa.String(length=32), nullable=True),
        sa.Column("cargo_capacity", sa.Integer(), nullable=False),
        sa.Column("hp", sa.Integer(), nullable=False),
        sa.Column("max_hp", sa.Integer(), nullable=False),
        sa.Column("tutorial_house_built", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("player_id"),
    )


def downgrade() -> None:
    op.drop_table("player_profiles")
    op.drop_table("currency_balances")
    op.drop_table("nation_treasuries")
    op.drop_table("harvest_cursors")
    op.drop_index(op.f("ix_islands_construction_status"), table_name="islands")
    op.drop_index(op.f("ix_islands_owner_id"), table_name="islands")
    op.drop_table("islands")
    sa.Enum(name="occupationstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="islandsize").drop(op.get_bind(), checkfirst=True)
