import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, JSON, Index
from sqlalchemy.sql import func
from cvforge.db.base import Base


class Order(Base):
    """
    A one-time package purchase and the entitlement bundle it grants.

    ``package_snapshot`` holds the bundle captured when the order was created;
    completion stamps the entitlement columns from it, never from the live catalog.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    cv_id = Column(String(36), ForeignKey("cvs.id"), nullable=True, index=True)

    package_type = Column(String, nullable=False)  # basic | standard | premium
    amount = Column(Integer, nullable=False)  # minor currency units
    currency = Column(String, nullable=False, default="GHS")

    status = Column(String, nullable=False, default="pending", index=True)  # pending | processing | completed | failed
    progress = Column(Integer, nullable=False, default=0)  # 0-100

    payment_reference = Column(String, unique=True, nullable=True)
    payment_access_code = Column(String, nullable=True)

    package_snapshot = Column(JSON, nullable=False, default=dict)

    # Entitlement bundle, stamped at completion
    edits_remaining = Column(Integer, nullable=False, default=0)
    has_cover_letter = Column(Boolean, nullable=False, default=False)
    has_linkedin_optimization = Column(Boolean, nullable=False, default=False)
    template_count = Column(Integer, nullable=False, default=0)

    # Generated files
    download_url = Column(String, nullable=True)
    pdf_file_name = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_orders_user_status_created", "user_id", "status", "created_at"),
    )

    def __repr__(self):
        return f"<Order(id={self.id}, package='{self.package_type}', status='{self.status}')>"
