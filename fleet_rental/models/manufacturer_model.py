from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from fleet_rental.database import Base


class ManufacturerModel(Base):
    __tablename__ = "manufacturer_models"
    __table_args__ = (
        UniqueConstraint("manufacturerId", "name", name="uq_manufacturer_model_name"),
    )

    id             = Column(Integer, primary_key=True, index=True)
    name           = Column(String(100), nullable=False)
    manufacturerId = Column(Integer, ForeignKey("manufacturers.id"), nullable=False, index=True)

    # ─── Relationships ─────────────────────────────────────────────────────────
    manufacturer = relationship("Manufacturer", back_populates="models")
    car_models   = relationship("CarModel", back_populates="manufacturer_model")

    def __repr__(self):
        return f"<ManufacturerModel id={self.id} name={self.name} manufacturerId={self.manufacturerId}>"
