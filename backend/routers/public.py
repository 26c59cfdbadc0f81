from fastapi import APIRouter
from datetime import datetime, timezone

router = APIRouter()


@router.get("/")
def root():
    return {"message": "Brahmaputra Karate League registration API is running"}


@router.get("/health")
def health_check():
    return {"status": "healthy"}


@router.get("/routes")
def list_routes():
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "routes": [
            {"method": "GET", "path": "/"},
            {"method": "GET", "path": "/health"},
            {"method": "GET", "path": "/routes"},
            {"method": "POST", "path": "/registrations/otp"},
            {"method": "POST", "path": "/registrations"},
            {"method": "POST", "path": "/admin/login"},
            {"method": "POST", "path": "/admin/logout"},
            {"method": "GET", "path": "/admin/session"},
            {"method": "GET", "path": "/admin/registrations"},
            {"method": "GET", "path": "/admin/registrations/stats"},
            {"method": "GET", "path": "/admin/registrations/export"},
            {"method": "PUT", "path": "/admin/registrations/{registration_id}/status"},
            {"method": "DELETE", "path": "/admin/registrations/{registration_id}"},
        ]
    }
