# backend/alembic/versions/001_booking_engine.py
"""Booking engine - Locations, kitchens, listings, bookings and overstays

Revision ID: 001_booking_engine
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the complete schema for the kitchen booking engine. Money columns
are integer cents. Kitchen bookings own their storage and equipment rows,
which remain the source of truth for addon pricing; the JSON item columns on
kitchen_bookings are a mirrored summary.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_booking_engine"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def _overstay_overrides():
    # NULL falls through to the next level of the penalty config
    return [
        sa.Column("overstay_grace_period_days", sa.Integer(), nullable=True),
        sa.Column("overstay_penalty_multiplier", sa.Integer(), nullable=True),
        sa.Column("overstay_max_penalty_days", sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    """Create booking engine tables."""
    print("Creating booking engine tables...")

    op.create_table(
        "locations",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("manager_id", sa.String(26), nullable=True),
        *_overstay_overrides(),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "kitchens",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("location_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("hourly_rate_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="CAD"),
        sa.Column("minimum_booking_hours", sa.Integer(), nullable=False, server_default="1"),
        # Bumped by every booking transaction to serialize writers per kitchen
        sa.Column("booking_version", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("hourly_rate_cents >= 0", name="check_kitchen_rate_non_negative"),
        sa.CheckConstraint("minimum_booking_hours >= 1", name="check_kitchen_min_hours"),
    )
    op.create_index("ix_kitchens_location_id", "kitchens", ["location_id"])

    op.create_table(
        "kitchen_availability",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("kitchen_id", sa.String(26), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("max_concurrent_bookings", sa.Integer(), nullable=False, server_default="1"),
        sa.ForeignKeyConstraint(["kitchen_id"], ["kitchens.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("kitchen_id", "day_of_week", name="uq_kitchen_availability_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_day_of_week_range"),
        sa.CheckConstraint("max_concurrent_bookings >= 1", name="check_window_capacity"),
    )
    op.create_index("ix_kitchen_availability_kitchen_id", "kitchen_availability", ["kitchen_id"])

    op.create_table(
        "kitchen_date_overrides",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("kitchen_id", sa.String(26), nullable=False),
        sa.Column("specific_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("max_concurrent_bookings", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["kitchen_id"], ["kitchens.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("kitchen_id", "specific_date", name="uq_kitchen_override_date"),
        sa.CheckConstraint("max_concurrent_bookings >= 1", name="check_override_capacity"),
    )
    op.create_index("ix_kitchen_date_overrides_kitchen_id", "kitchen_date_overrides", ["kitchen_id"])

    op.create_table(
        "storage_listings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("kitchen_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("storage_type", sa.String(50), nullable=False, server_default="other"),
        sa.Column("pricing_model", sa.String(20), nullable=False, server_default="daily"),
        sa.Column("base_price_cents", sa.Integer(), nullable=False),
        sa.Column("minimum_booking_duration", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="CAD"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_overstay_overrides(),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["kitchen_id"], ["kitchens.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("base_price_cents >= 0", name="check_storage_price_non_negative"),
        sa.CheckConstraint("minimum_booking_duration >= 1", name="check_storage_min_duration"),
    )
    op.create_index("ix_storage_listings_kitchen_id", "storage_listings", ["kitchen_id"])

    op.create_table(
        "equipment_listings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("kitchen_id", sa.String(26), nullable=False),
        sa.Column("equipment_type", sa.String(), nullable=False),
        sa.Column("availability_type", sa.String(20), nullable=False, server_default="rental"),
        sa.Column("session_rate_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("damage_deposit_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="CAD"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["kitchen_id"], ["kitchens.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("session_rate_cents >= 0", name="check_equipment_rate_non_negative"),
        sa.CheckConstraint("damage_deposit_cents >= 0", name="check_equipment_deposit_non_negative"),
    )
    op.create_index("ix_equipment_listings_kitchen_id", "equipment_listings", ["kitchen_id"])

    print("Creating access tables...")

    op.create_table(
        "chef_location_access",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("chef_id", sa.String(26), nullable=False),
        sa.Column("location_id", sa.String(26), nullable=False),
        sa.Column("granted_by", sa.String(26), nullable=False),
        sa.Column("granted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("chef_id", "location_id", name="uq_chef_location_access"),
    )
    op.create_index("ix_chef_location_access_chef_id", "chef_location_access", ["chef_id"])
    op.create_index("ix_chef_location_access_location_id", "chef_location_access", ["location_id"])

    op.create_table(
        "chef_kitchen_applications",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("chef_id", sa.String(26), nullable=False),
        sa.Column("location_id", sa.String(26), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="inReview"),
        sa.Column("current_tier", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("reviewed_by", sa.String(26), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chef_kitchen_applications_chef_id", "chef_kitchen_applications", ["chef_id"])
    op.create_index("ix_chef_kitchen_applications_location_id", "chef_kitchen_applications", ["location_id"])

    print("Creating booking tables...")

    op.create_table(
        "kitchen_bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("kitchen_id", sa.String(26), nullable=False),
        sa.Column("chef_id", sa.String(26), nullable=True),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("selected_slots", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("booking_type", sa.String(20), nullable=False, server_default="chef"),
        sa.Column("special_notes", sa.Text(), nullable=True),
        # Portal / external bookings
        sa.Column("created_by", sa.String(26), nullable=True),
        sa.Column("external_contact_name", sa.String(), nullable=True),
        sa.Column("external_contact_email", sa.String(), nullable=True),
        sa.Column("external_contact_phone", sa.String(), nullable=True),
        sa.Column("external_contact_company", sa.String(), nullable=True),
        # Pricing snapshot
        sa.Column("hourly_rate_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_hours", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.Column("kitchen_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("service_fee_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="CAD"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        # Mirrored addon summary
        sa.Column("storage_items", sa.JSON(), nullable=False),
        sa.Column("equipment_items", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["kitchen_id"], ["kitchens.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("total_price_cents >= 0", name="check_kitchen_booking_total_non_negative"),
    )
    op.create_index("ix_kitchen_bookings_id", "kitchen_bookings", ["id"])
    op.create_index("ix_kitchen_bookings_chef_id", "kitchen_bookings", ["chef_id"])
    op.create_index("ix_kitchen_bookings_status", "kitchen_bookings", ["status"])
    op.create_index("ix_kitchen_bookings_kitchen_date", "kitchen_bookings", ["kitchen_id", "booking_date"])

    op.create_table(
        "storage_bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("storage_listing_id", sa.String(26), nullable=False),
        sa.Column("kitchen_booking_id", sa.String(26), nullable=True),
        sa.Column("chef_id", sa.String(26), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        # Terms snapshotted from the listing at booking time
        sa.Column("pricing_model", sa.String(20), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("minimum_booking_duration", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("total_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("service_fee_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="CAD"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["storage_listing_id"], ["storage_listings.id"]),
        sa.ForeignKeyConstraint(["kitchen_booking_id"], ["kitchen_bookings.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("end_date >= start_date", name="check_storage_dates_ordered"),
    )
    op.create_index("ix_storage_bookings_id", "storage_bookings", ["id"])
    op.create_index("ix_storage_bookings_kitchen_booking_id", "storage_bookings", ["kitchen_booking_id"])
    op.create_index("ix_storage_bookings_chef_id", "storage_bookings", ["chef_id"])
    op.create_index("ix_storage_bookings_end_date", "storage_bookings", ["end_date"])

    op.create_table(
        "equipment_bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("equipment_listing_id", sa.String(26), nullable=False),
        sa.Column("kitchen_booking_id", sa.String(26), nullable=False),
        sa.Column("chef_id", sa.String(26), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("pricing_model", sa.String(20), nullable=False, server_default="session"),
        sa.Column("total_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("damage_deposit_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("service_fee_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="CAD"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["equipment_listing_id"], ["equipment_listings.id"]),
        sa.ForeignKeyConstraint(["kitchen_booking_id"], ["kitchen_bookings.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_equipment_bookings_id", "equipment_bookings", ["id"])
    op.create_index("ix_equipment_bookings_kitchen_booking_id", "equipment_bookings", ["kitchen_booking_id"])

    op.create_table(
        "pending_storage_extensions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("storage_booking_id", sa.String(26), nullable=False),
        sa.Column("new_end_date", sa.Date(), nullable=False),
        sa.Column("extension_days", sa.Integer(), nullable=False),
        sa.Column("extension_base_price_cents", sa.Integer(), nullable=False),
        sa.Column("extension_service_fee_cents", sa.Integer(), nullable=False),
        sa.Column("extension_total_price_cents", sa.Integer(), nullable=False),
        sa.Column("payment_session_id", sa.String(255), nullable=False),
        sa.Column("payment_intent_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        *_timestamps(updated=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["storage_booking_id"], ["storage_bookings.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("payment_session_id"),
    )
    op.create_index(
        "ix_pending_storage_extensions_storage_booking_id",
        "pending_storage_extensions",
        ["storage_booking_id"],
    )

    op.create_table(
        "storage_overstay_history",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("overstay_record_id", sa.String(26), nullable=False),
        sa.Column("previous_status", sa.String(20), nullable=True),
        sa.Column("new_status", sa.String(20), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("event_source", sa.String(20), nullable=False, server_default="system"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(26), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["overstay_record_id"], ["storage_overstay_records.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_storage_overstay_history_overstay_record_id",
        "storage_overstay_history",
        ["overstay_record_id"],
    )
    op.create_index("ix_storage_overstay_history_created_at", "storage_overstay_history", ["created_at"])

    print("Creating overstay and settings tables...")

    op.create_table(
        "storage_overstay_records",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("storage_booking_id", sa.String(26), nullable=False),
        sa.Column("idempotency_key", sa.String(100), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("days_overdue", sa.Integer(), nullable=False),
        sa.Column("days_charged", sa.Integer(), nullable=False),
        sa.Column("daily_rate_cents", sa.Integer(), nullable=False),
        sa.Column("penalty_multiplier", sa.Integer(), nullable=False),
        sa.Column("calculated_penalty_cents", sa.Integer(), nullable=False),
        sa.Column("final_penalty_cents", sa.Integer(), nullable=True),
        sa.Column("proposed_end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending_review"),
        sa.Column("reviewed_by", sa.String(26), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("waive_reason", sa.Text(), nullable=True),
        sa.Column("manager_notes", sa.Text(), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("detected_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["storage_booking_id"], ["storage_bookings.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key"),
    )
    op.create_index(
        "ix_storage_overstay_records_storage_booking_id",
        "storage_overstay_records",
        ["storage_booking_id"],
    )

    op.create_table(
        "platform_settings",
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("key"),
    )

    print("Booking engine tables created successfully!")


def downgrade() -> None:
    """Drop booking engine tables."""
    print("Dropping booking engine tables...")

    op.drop_table("platform_settings")
    op.drop_index("ix_storage_overstay_history_created_at", table_name="storage_overstay_history")
    op.drop_index("ix_storage_overstay_history_overstay_record_id", table_name="storage_overstay_history")
    op.drop_table("storage_overstay_history")
    op.drop_index("ix_storage_overstay_records_storage_booking_id", table_name="storage_overstay_records")
    op.drop_table("storage_overstay_records")
    op.drop_index("ix_pending_storage_extensions_storage_booking_id", table_name="pending_storage_extensions")
    op.drop_table("pending_storage_extensions")
    op.drop_index("ix_equipment_bookings_kitchen_booking_id", table_name="equipment_bookings")
    op.drop_index("ix_equipment_bookings_id", table_name="equipment_bookings")
    op.drop_table("equipment_bookings")
    op.drop_index("ix_storage_bookings_end_date", table_name="storage_bookings")
    op.drop_index("ix_storage_bookings_chef_id", table_name="storage_bookings")
    op.drop_index("ix_storage_bookings_kitchen_booking_id", table_name="storage_bookings")
    op.drop_index("ix_storage_bookings_id", table_name="storage_bookings")
    op.drop_table("storage_bookings")
    op.drop_index("ix_kitchen_bookings_kitchen_date", table_name="kitchen_bookings")
    op.drop_index("ix_kitchen_bookings_status", table_name="kitchen_bookings")
    op.drop_index("ix_kitchen_bookings_chef_id", table_name="kitchen_bookings")
    op.drop_index("ix_kitchen_bookings_id", table_name="kitchen_bookings")
    op.drop_table("kitchen_bookings")
    op.drop_index("ix_chef_kitchen_applications_location_id", table_name="chef_kitchen_applications")
    op.drop_index("ix_chef_kitchen_applications_chef_id", table_name="chef_kitchen_applications")
    op.drop_table("chef_kitchen_applications")
    op.drop_index("ix_chef_location_access_location_id", table_name="chef_location_access")
    op.drop_index("ix_chef_location_access_chef_id", table_name="chef_location_access")
    op.drop_table("chef_location_access")
    op.drop_index("ix_equipment_listings_kitchen_id", table_name="equipment_listings")
    op.drop_table("equipment_listings")
    op.drop_index("ix_storage_listings_kitchen_id", table_name="storage_listings")
    op.drop_table("storage_listings")
    op.drop_index("ix_kitchen_date_overrides_kitchen_id", table_name="kitchen_date_overrides")
    op.drop_table("kitchen_date_overrides")
    op.drop_index("ix_kitchen_availability_kitchen_id", table_name="kitchen_availability")
    op.drop_table("kitchen_availability")
    op.drop_index("ix_kitchens_location_id", table_name="kitchens")
    op.drop_table("kitchens")
    op.drop_table("locations")

    print("Booking engine tables dropped successfully!")
