from sqlalchemy import Column, Integer, String, Date, ForeignKey, TIMESTAMP, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleet_rental.database import Base


class Rental(Base):
    __tablename__ = "rentals"
    __table_args__ = (
        CheckConstraint("\"pickUpDate\" < \"returnDate\"", name="ck_rental_date_range"),
        CheckConstraint(
            "\"actualReturnDate\" IS NULL OR \"actualReturnDate\" >= \"pickUpDate\"",
            name="ck_rental_actual_return",
        ),
        Index("ix_rentals_plate_active", "licensePlate", "actualReturnDate"),
    )

    id               = Column(Integer, primary_key=True, index=True)
    licensePlate     = Column(String(20), ForeignKey("fleet_cars.licensePlate"), nullable=False)
    pickUpDate       = Column(Date, nullable=False)
    returnDate       = Column(Date, nullable=False)   # requested end, exclusive
    actualReturnDate = Column(Date, nullable=True)    # NULL = active rental
    userId           = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    createdAt        = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    fleet_car = relationship("FleetCar", back_populates="rentals")
    user      = relationship("User", back_populates="rentals")

    @property
    def is_active(self) -> bool:
        return self.actualReturnDate is None

    def __repr__(self):
        return f"<Rental id={self.id} plate={self.licensePlate} active={self.is_active}>"
