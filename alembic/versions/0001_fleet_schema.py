"""fleet catalog, rentals and audit log

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("firstName", sa.String(50), nullable=False),
        sa.Column("lastName", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "manufacturers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
    )
    op.create_index("ix_manufacturers_id", "manufacturers", ["id"])

    op.create_table(
        "manufacturer_models",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("manufacturerId", sa.Integer(), sa.ForeignKey("manufacturers.id"), nullable=False),
        sa.UniqueConstraint("manufacturerId", "name", name="uq_manufacturer_model_name"),
    )
    op.create_index("ix_manufacturer_models_id", "manufacturer_models", ["id"])
    op.create_index("ix_manufacturer_models_manufacturerId", "manufacturer_models", ["manufacturerId"])

    op.create_table(
        "car_models",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("manufacturerModelId", sa.Integer(), sa.ForeignKey("manufacturer_models.id"), nullable=False),
        sa.Column("productionYear", sa.Integer(), nullable=False),
        sa.Column("isManualGear", sa.Boolean(), nullable=False),
        sa.Column("dailyPrice", sa.Numeric(10, 2), nullable=False),
        sa.Column("dayDelayPrice", sa.Numeric(10, 2), nullable=False),
        sa.UniqueConstraint("manufacturerModelId", "productionYear", "isManualGear",
                            name="uq_car_model_year_gear"),
        sa.CheckConstraint("\"dailyPrice\" >= 0", name="ck_car_model_daily_price"),
        sa.CheckConstraint("\"dayDelayPrice\" >= 0", name="ck_car_model_delay_price"),
    )
    op.create_index("ix_car_models_id", "car_models", ["id"])
    op.create_index("ix_car_models_manufacturerModelId", "car_models", ["manufacturerModelId"])

    op.create_table(
        "fleet_cars",
        sa.Column("licensePlate", sa.String(20), primary_key=True),
        sa.Column("carModelId", sa.Integer(), sa.ForeignKey("car_models.id"), nullable=False),
        sa.Column("imagePath", sa.String(500), nullable=True),
        sa.Column("lockVersion", sa.Integer(), server_default="0", nullable=False),
    )
    op.create_index("ix_fleet_cars_carModelId", "fleet_cars", ["carModelId"])

    op.create_table(
        "rentals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("licensePlate", sa.String(20), sa.ForeignKey("fleet_cars.licensePlate"), nullable=False),
        sa.Column("pickUpDate", sa.Date(), nullable=False),
        sa.Column("returnDate", sa.Date(), nullable=False),
        sa.Column("actualReturnDate", sa.Date(), nullable=True),
        sa.Column("userId", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("\"pickUpDate\" < \"returnDate\"", name="ck_rental_date_range"),
        sa.CheckConstraint(
            "\"actualReturnDate\" IS NULL OR \"actualReturnDate\" >= \"pickUpDate\"",
            name="ck_rental_actual_return",
        ),
    )
    op.create_index("ix_rentals_id", "rentals", ["id"])
    op.create_index("ix_rentals_userId", "rentals", ["userId"])
    op.create_index("ix_rentals_plate_active", "rentals", ["licensePlate", "actualReturnDate"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("userId", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entityType", sa.String(100), nullable=False),
        sa.Column("entityId", sa.String(50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("rentals")
    op.drop_table("fleet_cars")
    op.drop_table("car_models")
    op.drop_table("manufacturer_models")
    op.drop_table("manufacturers")
    op.drop_table("users")
