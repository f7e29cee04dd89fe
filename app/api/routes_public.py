"""
Public API routes - no authentication required
"""

from fastapi import APIRouter
from fastapi.responses import Response

from app.services.excel_service import ExcelService
from app.utils.phone import allowed_examples
from app.utils.responses import success_response

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/guest-template.xlsx")
async def download_template():
    """Download the blank guest import template"""
    return Response(
        content=ExcelService.create_template(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=guest_template.xlsx"}
    )

@router.get("/phone-formats")
async def phone_formats():
    """Accepted phone number countries with examples"""
    return success_response(message="Accepted phone formats", data=allowed_examples())
