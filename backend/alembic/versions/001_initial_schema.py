"""Initial schema

Revision ID: 001
Revises: None
Create Date: 2025-01-20 00:00:00.000000+00:00

Creates every Fadetrack table:

    barbers                 rating aggregate per (name, shop, location)
    reviews                 client reviews, optional professional reply
    professional_profiles   directory entries, mirrored aggregate
    professional_services   service menu per profile
    professional_portfolio  uploaded work samples per profile
    user_roles              customer / professional, absent = customer
    usernames               unique, lower-cased handles
    haircuts                personal visit log
    reminders               rebooking cadences
    chatkit_usage           AI search quota counters per identity

Rollback: downgrade() drops all of them (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.TIMESTAMP(timezone=True), nullable=True)
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), server_default=sa.text("0"), nullable=False)


def upgrade() -> None:
    # ── Reviews & aggregates ──────────────────────────────────────────────
    op.create_table(
        "barbers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("shop_name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(500), nullable=False),
        _counter("rating_sum"),
        _counter("total_reviews"),
        sa.Column("average_rating", sa.Float(), server_default=sa.text("0"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_barbers"),
        sa.UniqueConstraint("name", "shop_name", "location", name="uq_barbers_identity"),
    )
    op.create_index(
        "idx_barbers_rating",
        "barbers",
        [sa.text("average_rating DESC"), sa.text("total_reviews DESC")],
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("barber_id", sa.Uuid(), nullable=True),
        sa.Column("barber_name", sa.String(255), nullable=False),
        sa.Column("shop_name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(500), nullable=False),
        sa.Column("city", sa.String(120), nullable=True),
        sa.Column("state", sa.String(120), nullable=True),
        sa.Column("country", sa.String(120), nullable=True),
        sa.Column("place_id", sa.String(255), nullable=True),
        sa.Column("service_type", sa.String(120), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("cost", sa.Float(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("review_text", sa.Text(), nullable=False),
        sa.Column("photos", sa.JSON(), nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("professional_response", sa.Text(), nullable=True),
        _timestamp("response_date", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_reviews"),
        sa.ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], name="fk_reviews_barber_id", ondelete="SET NULL"
        ),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )
    op.create_index("idx_reviews_user_email", "reviews", ["user_email"])
    op.create_index("idx_reviews_professional", "reviews", ["barber_name", "shop_name"])
    op.create_index("idx_reviews_created_at", "reviews", [sa.text("created_at DESC")])

    # ── Professionals ─────────────────────────────────────────────────────
    op.create_table(
        "professional_profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("profession_type", sa.String(80), nullable=False),
        sa.Column("bio", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("phone", sa.String(40), server_default=sa.text("''"), nullable=False),
        sa.Column("address", sa.String(500), server_default=sa.text("''"), nullable=False),
        sa.Column("city", sa.String(120), server_default=sa.text("''"), nullable=False),
        sa.Column("state", sa.String(120), server_default=sa.text("''"), nullable=False),
        sa.Column("zip_code", sa.String(20), server_default=sa.text("''"), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("instagram", sa.String(255), server_default=sa.text("''"), nullable=False),
        sa.Column("website", sa.String(500), server_default=sa.text("''"), nullable=False),
        sa.Column("profile_image", sa.String(1000), nullable=True),
        sa.Column("years_experience", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("specialties", sa.JSON(), nullable=False),
        sa.Column("price_range", sa.String(20), server_default=sa.text("''"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _counter("rating_sum"),
        _counter("total_reviews"),
        sa.Column("average_rating", sa.Float(), server_default=sa.text("0"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_professional_profiles"),
        sa.UniqueConstraint("user_email", name="uq_professional_profiles_user_email"),
    )
    op.create_index(
        "idx_profiles_rating", "professional_profiles", [sa.text("average_rating DESC")]
    )
    op.create_index(
        "idx_profiles_names", "professional_profiles", ["display_name", "business_name"]
    )

    op.create_table(
        "professional_services",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("professional_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("price_max", sa.Float(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_professional_services"),
        sa.ForeignKeyConstraint(
            ["professional_id"],
            ["professional_profiles.id"],
            name="fk_professional_services_professional_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("idx_services_professional", "professional_services", ["professional_id"])

    op.create_table(
        "professional_portfolio",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("professional_id", sa.Uuid(), nullable=False),
        sa.Column("professional_email", sa.String(320), nullable=False),
        sa.Column("image_url", sa.String(1000), nullable=False),
        sa.Column("caption", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("service_type", sa.String(120), server_default=sa.text("'general'"), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_professional_portfolio"),
        sa.ForeignKeyConstraint(
            ["professional_id"],
            ["professional_profiles.id"],
            name="fk_professional_portfolio_professional_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("idx_portfolio_email", "professional_portfolio", ["professional_email"])

    # ── Accounts ──────────────────────────────────────────────────────────
    op.create_table(
        "user_roles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(20), server_default=sa.text("'customer'"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_user_roles"),
        sa.UniqueConstraint("user_email", name="uq_user_roles_user_email"),
        sa.CheckConstraint("role IN ('customer', 'professional')", name="ck_user_roles_role"),
    )

    op.create_table(
        "usernames",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("username", sa.String(20), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_usernames"),
        sa.UniqueConstraint("user_email", name="uq_usernames_user_email"),
        sa.UniqueConstraint("username", name="uq_usernames_username"),
    )

    op.create_table(
        "haircuts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("barber", sa.String(255), nullable=False),
        sa.Column("location", sa.String(500), server_default=sa.text("''"), nullable=False),
        sa.Column("style", sa.String(255), server_default=sa.text("''"), nullable=False),
        sa.Column("cost", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), server_default=sa.text("''"), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_haircuts"),
    )
    op.create_index("idx_haircuts_user_date", "haircuts", ["user_email", "date"])

    op.create_table(
        "reminders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("reminder_days", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("last_sent_at", nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_reminders"),
        sa.CheckConstraint("reminder_days > 0", name="ck_reminders_days_positive"),
    )
    op.create_index("idx_reminders_user_email", "reminders", ["user_email"])

    # ── AI search quota ───────────────────────────────────────────────────
    op.create_table(
        "chatkit_usage",
        sa.Column("id", sa.Uuid(), nullable=False),
        # Email, or "ip:<address>" for anonymous callers
        sa.Column("user_email", sa.String(320), nullable=False),
        _counter("total_sessions"),
        _counter("daily_sessions"),
        _counter("monthly_sessions"),
        _timestamp("last_session_at", nullable=True),
        sa.Column("daily_reset_date", sa.String(10), nullable=False),
        sa.Column("monthly_reset_month", sa.String(7), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_chatkit_usage"),
        sa.UniqueConstraint("user_email", name="uq_chatkit_usage_user_email"),
    )


def downgrade() -> None:
    op.drop_table("chatkit_usage")
    op.drop_index("idx_reminders_user_email", table_name="reminders")
    op.drop_table("reminders")
    op.drop_index("idx_haircuts_user_date", table_name="haircuts")
    op.drop_table("haircuts")
    op.drop_table("usernames")
    op.drop_table("user_roles")
    op.drop_index("idx_portfolio_email", table_name="professional_portfolio")
    op.drop_table("professional_portfolio")
    op.drop_index("idx_services_professional", table_name="professional_services")
    op.drop_table("professional_services")
    op.drop_index("idx_profiles_names", table_name="professional_profiles")
    op.drop_index("idx_profiles_rating", table_name="professional_profiles")
    op.drop_table("professional_profiles")
    op.drop_index("idx_reviews_created_at", table_name="reviews")
    op.drop_index("idx_reviews_professional", table_name="reviews")
    op.drop_index("idx_reviews_user_email", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("idx_barbers_rating", table_name="barbers")
    op.drop_table("barbers")
