from sqlalchemy import Column, String, Integer, Text
from sqlalchemy.orm import relationship

from sannu.db.database import Base
from sannu.models.base_model import int_pk, int_fk, money
from sannu.models.mixins import AuditMixin, BelongsToTenant


class Product(Base, AuditMixin, BelongsToTenant):
    """A priced item inside a project; project total is the sum of product prices."""
    __tablename__ = "products"

    id = int_pk()
    project_id = int_fk("projects")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = money()
    # Storage-relative path, e.g. "products/<uuid>.jpg"
    image_url = Column(String(500), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    project = relationship("Project", back_populates="products")

    def __repr__(self):
        return f"<Product(id={self.id}, project={self.project_id}, name={self.name})>"
