"""
Pydantic models shared by the route modules.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator

from sannu.services.image_service import ImageService


def collapse_whitespace(value):
    """Trim strings and collapse internal runs of whitespace."""
    if isinstance(value, str):
        return " ".join(value.split())
    return value


class CleanedModel(BaseModel):
    """Request model whose string inputs are trimmed and collapsed."""

    @field_validator("*", mode="before")
    @classmethod
    def _collapse(cls, value):
        return collapse_whitespace(value)


# ==================== Users & Tenants ====================

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    is_active: bool
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TenantSummary(BaseModel):
    id: int
    slug: str
    name: str
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TenantResponse(TenantSummary):
    status: str
    is_active: bool
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    platform_fee_percentage: Optional[Decimal] = None
    suspended_at: Optional[datetime] = None
    suspended_reason: Optional[str] = None
    created_at: Optional[datetime] = None


# ==================== Projects ====================

class ProductResponse(BaseModel):
    id: int
    project_id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    sort_order: int

    @field_serializer("image_url")
    def _public_image_url(self, value: Optional[str]) -> Optional[str]:
        return ImageService().get_image_url(value)

    model_config = ConfigDict(from_attributes=True)


class ProjectResponse(BaseModel):
    id: int
    tenant_id: int
    name: str
    slug: str
    description: Optional[str] = None
    visibility: str
    status: str
    requires_approval: bool
    max_contributors: Optional[int] = None
    total_amount: Decimal
    minimum_contribution: Optional[Decimal] = None
    payment_options: List[str]
    installment_frequency: str
    custom_installment_months: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    registration_deadline: Optional[date] = None
    created_by: Optional[int] = None
    managed_by: Optional[List[int]] = None
    settings: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProjectDetailResponse(ProjectResponse):
    products: List[ProductResponse] = []


class ProjectStatistics(BaseModel):
    total_contributors: int
    total_raised: Decimal
    completion_percentage: float
    days_remaining: Optional[int] = None
    average_contribution: Decimal


class ProjectPage(BaseModel):
    data: List[ProjectResponse]
    total: int
    page: int
    per_page: int
    last_page: int
    statistics: Optional[Dict[int, ProjectStatistics]] = None


# ==================== Invitations ====================

class InvitationResponse(BaseModel):
    id: int
    project_id: int
    email: str
    status: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Audit logs ====================

class AuditLogResponse(BaseModel):
    id: int
    event: str
    message: str
    severity: str
    user_id: Optional[int] = None
    context: Optional[Dict[str, Any]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Generic ====================

class MessageResponse(BaseModel):
    message: str


def serialize_page(page: dict, model) -> dict:
    """Convert a `paginate()` result's rows with `model`."""
    result = dict(page)
    result["data"] = [model.model_validate(row) for row in page["data"]]
    return result


# ==================== Project requests ====================

class ProjectCreateRequest(BaseModel):
    name: str = Field(..., max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    visibility: str = "public"
    requires_approval: bool = False
    max_contributors: Optional[int] = None
    total_amount: Optional[Decimal] = None
    minimum_contribution: Optional[Decimal] = None
    payment_options: List[str] = ["full"]
    installment_frequency: str = "monthly"
    custom_installment_months: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    registration_deadline: Optional[date] = None
    managed_by: Optional[List[int]] = None
    settings: Optional[Dict[str, Any]] = None


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    visibility: Optional[str] = None
    requires_approval: Optional[bool] = None
    max_contributors: Optional[int] = None
    total_amount: Optional[Decimal] = None
    minimum_contribution: Optional[Decimal] = None
    payment_options: Optional[List[str]] = None
    installment_frequency: Optional[str] = None
    custom_installment_months: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    registration_deadline: Optional[date] = None
    managed_by: Optional[List[int]] = None
    settings: Optional[Dict[str, Any]] = None


class AdminProjectCreateRequest(ProjectCreateRequest):
    tenant_id: int


class CancelProjectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class ReorderProductsRequest(BaseModel):
    order: List[int]


class InvitationRequest(BaseModel):
    email: EmailStr
