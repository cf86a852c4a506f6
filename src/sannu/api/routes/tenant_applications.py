"""
API routes for organizations applying to join the platform.

Endpoints:
- POST /register/tenant - Submit an application
- GET /tenant-application/status/{reference_number} - Check its status
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator
from sqlalchemy.orm import Session

from sannu.api.dependencies.services import get_email_service
from sannu.api.schemas import CleanedModel
from sannu.db.database import get_db
from sannu.models.enums import IndustryType
from sannu.services.email_service import EmailService
from sannu.services.tenant_application_service import TenantApplicationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tenant-applications"])


# ==================== Request/Response Models ====================

class TenantApplicationRequest(CleanedModel):
    organization_name: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-zA-Z0-9\s\-\&\.\,\']+$")
    business_description: str = Field(..., min_length=50, max_length=1000)
    industry_type: IndustryType
    contact_person_name: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-zA-Z\s\-\'\.]+$")
    contact_person_email: EmailStr
    contact_person_phone: Optional[str] = Field(None, max_length=20, pattern=r"^[\+]?[0-9\s\-\(\)]+$")
    business_registration_number: Optional[str] = Field(None, max_length=100)
    website_url: Optional[HttpUrl] = None
    terms_accepted: bool

    @field_validator("terms_accepted")
    @classmethod
    def _must_accept_terms(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must accept the terms and conditions.")
        return value

    @field_validator("contact_person_phone", "business_registration_number", "website_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        return value or None


class TenantApplicationCreated(BaseModel):
    message: str
    reference_number: str


class TenantApplicationStatusResponse(BaseModel):
    reference_number: str
    organization_name: str
    status: str
    status_label: str
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Endpoints ====================

@router.post("/register/tenant", response_model=TenantApplicationCreated, status_code=status.HTTP_201_CREATED)
def submit_application(
    body: TenantApplicationRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Submit a tenant application.

    Confirmation and admin notification emails are sent in the background.
    """
    data = body.model_dump()
    data["industry_type"] = body.industry_type.value
    data["website_url"] = str(body.website_url) if body.website_url else None

    service = TenantApplicationService(db, email_service, dispatch=background_tasks.add_task)
    application = service.create_application(data)

    return TenantApplicationCreated(
        message="Your application has been submitted successfully.",
        reference_number=application.reference_number,
    )


@router.get(
    "/tenant-application/status/{reference_number}",
    response_model=TenantApplicationStatusResponse,
    responses={404: {"description": "Application not found"}},
)
def application_status(reference_number: str, db: Session = Depends(get_db)):
    application = TenantApplicationService(db).find_by_reference(reference_number)
    if application is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "error": "Application not found",
                "message": "No application found with the provided reference number.",
            },
        )
    return TenantApplicationStatusResponse.model_validate(application)
