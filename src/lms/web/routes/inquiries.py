"""Public contact form."""

from fastapi import APIRouter, status

from lms.db.admin_repository import create_inquiry
from lms.web.schemas import InquiryCreate, InquiryCreatedResponse

router = APIRouter(prefix="/api/inquiries", tags=["inquiries"])


@router.post("", response_model=InquiryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def submit_inquiry(body: InquiryCreate) -> InquiryCreatedResponse:
    """Submit an inquiry (no authentication required)."""
    inquiry = create_inquiry(body.email, body.subject, body.message)
    return InquiryCreatedResponse(id=inquiry.id, status=inquiry.status)
