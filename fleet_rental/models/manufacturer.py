from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from fleet_rental.database import Base


class Manufacturer(Base):
    __tablename__ = "manufacturers"

    id   = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    models = relationship("ManufacturerModel", back_populates="manufacturer")

    def __repr__(self):
        return f"<Manufacturer id={self.id} name={self.name}>"
