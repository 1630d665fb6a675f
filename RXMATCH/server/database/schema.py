from __future__ import annotations

import json
from typing import Any

from sqlalchemy import Boolean, Column, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

from RXMATCH.server.utils.constants import PRODUCTS_TABLE


Base = declarative_base()


###############################################################################
class Product(Base):
    __tablename__ = PRODUCTS_TABLE
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text)
    manufacturer = Column(String)
    generic_name = Column(String, index=True)
    strength = Column(String)
    dosage_form = Column(String)
    pack_size = Column(String)
    price = Column(Float, nullable=False, default=0.0)
    mrp = Column(Float)
    discount_percentage = Column(Float, default=0.0)
    in_stock = Column(Boolean, default=True)
    stock_quantity = Column(Integer, default=0)
    requires_prescription = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    image_urls = Column(Text)

    # -------------------------------------------------------------------------
    def to_record(self) -> dict[str, Any]:
        try:
            images = json.loads(self.image_urls) if self.image_urls else []
        except ValueError:
            images = self.image_urls
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "manufacturer": self.manufacturer,
            "generic_name": self.generic_name,
            "strength": self.strength,
            "dosage_form": self.dosage_form,
            "pack_size": self.pack_size,
            "price": self.price,
            "mrp": self.mrp,
            "discount_percentage": self.discount_percentage,
            "in_stock": self.in_stock,
            "stock_quantity": self.stock_quantity,
            "requires_prescription": self.requires_prescription,
            "is_active": self.is_active,
            "image_urls": images,
        }
