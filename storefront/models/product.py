from sqlalchemy import Column, Integer, String, Float, Text
from storefront.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Float, nullable=False, default=0)
    description = Column(Text, nullable=True)
    image_url = Column(String(1024), nullable=True)
