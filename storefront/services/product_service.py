from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.errors import NotFoundError
from storefront.models.product import Product
from storefront.schemas.product import ProductCreate, ProductUpdate


class ProductService:

    @staticmethod
    def create_product(db: Session, data: ProductCreate) -> Product:
        product = Product(**data.model_dump())
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    @staticmethod
    def get_product(db: Session, product_id: int) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    @staticmethod
    def get_or_404(db: Session, product_id: int) -> Product:
        product = ProductService.get_product(db, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    @staticmethod
    def get_products(db: Session, skip: int = 0, limit: int = 100) -> List[Product]:
        limit = min(max(limit, 1), 500)
        return db.query(Product).order_by(Product.id).offset(skip).limit(limit).all()

    @staticmethod
    def get_many(db: Session, product_ids: List[int]) -> List[Product]:
        """Products for ``product_ids`` in the given order; unknown ids are skipped."""
        if not product_ids:
            return []
        found = {p.id: p for p in db.query(Product).filter(Product.id.in_(product_ids)).all()}
        return [found[pid] for pid in product_ids if pid in found]

    @staticmethod
    def update_product(db: Session, product_id: int, data: ProductUpdate) -> Product:
        product = ProductService.get_or_404(db, product_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(product, field, value)
        db.commit()
        db.refresh(product)
        return product

    @staticmethod
    def delete_product(db: Session, product_id: int) -> None:
        product = ProductService.get_or_404(db, product_id)
        db.delete(product)
        db.commit()
