from sqlalchemy import Column, Integer, Boolean, Numeric, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from fleet_rental.database import Base


class CarModel(Base):
    __tablename__ = "car_models"
    __table_args__ = (
        UniqueConstraint("manufacturerModelId", "productionYear", "isManualGear",
                         name="uq_car_model_year_gear"),
        CheckConstraint("\"dailyPrice\" >= 0", name="ck_car_model_daily_price"),
        CheckConstraint("\"dayDelayPrice\" >= 0", name="ck_car_model_delay_price"),
    )

    id                  = Column(Integer, primary_key=True, index=True)
    manufacturerModelId = Column(Integer, ForeignKey("manufacturer_models.id"), nullable=False, index=True)
    productionYear      = Column(Integer, nullable=False)
    isManualGear        = Column(Boolean, default=False, nullable=False)
    dailyPrice          = Column(Numeric(10, 2), nullable=False)
    dayDelayPrice       = Column(Numeric(10, 2), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    manufacturer_model = relationship("ManufacturerModel", back_populates="car_models")
    fleet_cars         = relationship("FleetCar", back_populates="car_model")

    @property
    def gear_type(self) -> str:
        return "Manual" if self.isManualGear else "Automatic"

    def __repr__(self):
        return f"<CarModel id={self.id} year={self.productionYear} manual={self.isManualGear}>"
