"""Initial schema — consoles, regions, ratings, games, collection_items, exchange_rates

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_TIERS = ("loose", "cib", "new", "box", "manual")
_CURRENCIES = ("usd", "nok", "nok2")


def upgrade() -> None:
    # --- reference tables ---
    op.create_table(
        "consoles",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
    )
    op.create_table(
        "regions",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
    )
    op.create_table(
        "ratings",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, comment="Display name (e.g., 'PEGI 16')"),
        sa.Column("system", sa.String(), nullable=False, comment="Rating board: PEGI, ESRB, CERO, ACB, BBFC, USK"),
        sa.Column("description", sa.String(), nullable=True),
    )

    # --- games (catalog) ---
    price_columns = [
        sa.Column(f"{tier}_{currency}", sa.DECIMAL(10, 2), nullable=True)
        for tier in _TIERS
        for currency in _CURRENCIES
    ]
    op.create_table(
        "games",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("console_id", sa.INTEGER(), sa.ForeignKey("consoles.id"), nullable=True),
        sa.Column("region_id", sa.INTEGER(), sa.ForeignKey("regions.id"), nullable=True),
        sa.Column("rating_id", sa.INTEGER(), sa.ForeignKey("ratings.id"), nullable=True),
        sa.Column("pricecharting_id", sa.String(), nullable=True, comment="External price identifier"),
        sa.Column("pricecharting_url", sa.String(), nullable=True, unique=True, comment="External price page, globally unique"),
        sa.Column("cover_url", sa.String(), nullable=True),
        sa.Column("developer", sa.String(), nullable=True),
        sa.Column("publisher", sa.String(), nullable=True),
        sa.Column("release_year", sa.INTEGER(), nullable=True),
        sa.Column("genre", sa.String(), nullable=True),
        sa.Column("is_special", sa.BOOLEAN(), server_default=sa.false(), nullable=False),
        sa.Column("is_kinect", sa.BOOLEAN(), server_default=sa.false(), nullable=False),
        *price_columns,
    )
    op.create_index(
        "uq_games_title_console",
        "games",
        [sa.text("lower(title)"), "console_id"],
        unique=True,
    )
    op.create_index("ix_games_pricecharting_id", "games", ["pricecharting_id"])

    # --- collection_items ---
    op.create_table(
        "collection_items",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("game_id", sa.INTEGER(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column("console_id", sa.INTEGER(), nullable=True, comment="Copied from games.console_id at add time"),
        sa.Column("region_id", sa.INTEGER(), nullable=True, comment="Copied from games.region_id at add time"),
        sa.Column("box_condition", sa.String(8), nullable=False, server_default="missing"),
        sa.Column("manual_condition", sa.String(8), nullable=False, server_default="missing"),
        sa.Column("disc_condition", sa.String(8), nullable=False, server_default="missing"),
        sa.Column("price_override", sa.DECIMAL(10, 2), nullable=True, comment="Manual valuation in the display currency"),
        sa.Column("is_special", sa.BOOLEAN(), server_default=sa.false(), nullable=False),
        sa.Column("is_kinect", sa.BOOLEAN(), server_default=sa.false(), nullable=False),
        sa.Column("is_new", sa.BOOLEAN(), server_default=sa.false(), nullable=False),
        sa.Column("is_promo", sa.BOOLEAN(), server_default=sa.false(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "added_date",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_collection_items_game_id", "collection_items", ["game_id"])

    # --- exchange_rates (append-only) ---
    op.create_table(
        "exchange_rates",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("currency", sa.String(3), nullable=False, comment="ISO 4217 code, upper-case (e.g., 'NOK')"),
        sa.Column("rate", sa.DECIMAL(12, 6), nullable=False, comment="Units of currency per 1 USD"),
        sa.Column("timestamp", sa.TIMESTAMP(timezone=True), nullable=False, comment="UTC time the rate was observed"),
        sa.CheckConstraint("rate > 0", name="ck_exchange_rates_rate_positive"),
    )
    op.create_index(
        "ix_exchange_rates_currency_timestamp",
        "exchange_rates",
        ["currency", "timestamp"],
    )


def downgrade() -> None:
    op.drop_index("ix_exchange_rates_currency_timestamp", table_name="exchange_rates")
    op.drop_table("exchange_rates")
    op.drop_index("ix_collection_items_game_id", table_name="collection_items")
    op.drop_table("collection_items")
    op.drop_index("ix_games_pricecharting_id", table_name="games")
    op.drop_index("uq_games_title_console", table_name="games")
    op.drop_table("games")
    op.drop_table("ratings")
    op.drop_table("regions")
    op.drop_table("consoles")
