"""
Product management for projects.

A project's total_amount always equals the sum of its product prices; every
add, update and delete recalculates it.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from sannu.exceptions import ValidationError
from sannu.models.product import Product
from sannu.models.project import Project
from sannu.services.image_service import ImageService, PRODUCT_DIRECTORY, UploadedImage
from sannu.tenancy.scoping import without_tenant_scope

logger = logging.getLogger(__name__)


def _price(value) -> Optional[Decimal]:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return price.quantize(Decimal("0.01"))


class ProductService:
    def __init__(self, db: Session, image_service: Optional[ImageService] = None):
        self.db = db
        self.image_service = image_service if image_service is not None else ImageService()

    def add_product(self, project: Project, data: dict, image: Optional[UploadedImage] = None) -> Product:
        """
        Add a product at the end of the project's list.

        Raises:
            ValidationError: Missing name, bad price or invalid image
        """
        self._validate_product_data(data)

        image_path = self.image_service.upload_product_image(image) if image is not None else None
        try:
            product = Product(
                tenant_id=project.tenant_id,
                project_id=project.id,
                name=data["name"].strip(),
                description=data.get("description"),
                price=_price(data["price"]),
                image_url=image_path,
                sort_order=self._next_sort_order(project),
            )
            self.db.add(product)
            self.db.flush()
            self._update_project_total(project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.image_service.delete_image(image_path)
            raise

        self.db.refresh(product)
        logger.info(f"Added product {product.id} to project {project.id}")
        return product

    def update_product(
        self,
        product: Product,
        data: dict,
        image: Optional[UploadedImage] = None,
        remove_image: bool = False,
    ) -> Product:
        """
        Update a product; a new image replaces the old one, `remove_image`
        drops it. Replaced files are deleted only after the commit.
        """
        self._validate_product_data(data, product)

        old_image = product.image_url
        new_image = self.image_service.upload_product_image(image) if image is not None else None
        try:
            if "name" in data:
                product.name = data["name"].strip()
            if "description" in data:
                product.description = data["description"]
            if "price" in data:
                product.price = _price(data["price"])
            if new_image is not None:
                product.image_url = new_image
            elif remove_image:
                product.image_url = None

            self.db.flush()
            self._update_project_total(product.project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.image_service.delete_image(new_image)
            raise

        if old_image and old_image != product.image_url:
            self.image_service.delete_image(old_image)

        self.db.refresh(product)
        return product

    def delete_product(self, product: Product) -> bool:
        """
        Raises:
            ValueError: When the product's project already has contributions
        """
        project = product.project
        if project.has_contributions():
            raise ValueError("Cannot delete product that is referenced by existing contributions.")

        image = product.image_url
        project.products.remove(product)
        self.db.flush()
        self._update_project_total(project)
        self.db.commit()

        self.image_service.delete_image(image)
        logger.info(f"Deleted product from project {project.id}")
        return True

    def reorder_products(self, project: Project, ordered_ids: List[int]) -> None:
        """Set sort_order from the position of each product id in `ordered_ids`."""
        if not ordered_ids:
            raise ValueError("Order array cannot be empty.")

        by_id = {p.id: p for p in project.products}
        for position, product_id in enumerate(ordered_ids):
            product = by_id.get(int(product_id))
            if product is not None:
                product.sort_order = position
        self.db.commit()
        self.db.expire(project, ["products"])

    def get_project_products(self, project: Project) -> List[Product]:
        return list(project.products)

    def calculate_project_product_total(self, project: Project) -> Decimal:
        return project.calculate_total_amount()

    def cleanup_unused_images(self, dry_run: bool = False) -> List[str]:
        def is_used(path: str) -> bool:
            query = without_tenant_scope(self.db.query(Product.id)).filter(Product.image_url == path)
            return query.first() is not None

        return self.image_service.cleanup_unused_images(PRODUCT_DIRECTORY, is_used, dry_run=dry_run)

    def _validate_product_data(self, data: dict, product: Optional[Product] = None) -> None:
        if product is None or "name" in data:
            if not (data.get("name") or "").strip():
                raise ValidationError.single("name", "Product name is required.")
        if product is None or "price" in data:
            if _price(data.get("price")) is None:
                raise ValidationError.single("price", "Product price must be a valid positive number.")

    def _next_sort_order(self, project: Project) -> int:
        current = self.db.query(func.max(Product.sort_order)).filter(
            Product.project_id == project.id
        ).scalar()
        return 0 if current is None else current + 1

    def _update_project_total(self, project: Project) -> None:
        self.db.expire(project, ["products"])
        project.total_amount = project.calculate_total_amount()
