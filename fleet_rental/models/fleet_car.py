from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from fleet_rental.database import Base


class FleetCar(Base):
    __tablename__ = "fleet_cars"

    licensePlate = Column(String(20), primary_key=True)
    carModelId   = Column(Integer, ForeignKey("car_models.id"), nullable=False, index=True)
    imagePath    = Column(String(500), nullable=True)
    # Bumped by every reservation transaction to serialise bookings on this car
    lockVersion  = Column(Integer, default=0, server_default="0", nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    car_model = relationship("CarModel", back_populates="fleet_cars")
    rentals   = relationship("Rental", back_populates="fleet_car")

    def __repr__(self):
        return f"<FleetCar plate={self.licensePlate} carModelId={self.carModelId}>"
