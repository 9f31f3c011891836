"""
Google Calendar Integration Routes
Lets a doctor link the calendar used to create Meet links for confirmed appointments
"""

import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_current_caller
from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI
from ..database import get_db
from ..models_google_calendar import GoogleCalendarIntegration
from ..policy import Caller, authorize
from ..services.google_calendar_service import (
    encrypt_token,
    exchange_code,
    fetch_google_email,
    get_integration,
    revoke_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google-calendar", tags=["google-calendar"])

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/userinfo.email",
]


class ConnectRequest(BaseModel):
    code: str = Field(..., min_length=1)


@router.get("/status")
async def get_google_calendar_status(
    caller: Caller = Depends(get_current_caller), db: Session = Depends(get_db)
):
    """Get Google Calendar connection status"""
    integration = get_integration(db, caller.id)
    if not integration:
        return {"connected": False, "userEmail": None, "calendarId": None}

    return {
        "connected": True,
        "userEmail": integration.google_user_email,
        "calendarId": integration.google_calendar_id,
    }


@router.get("/authorize")
async def initiate_google_calendar_oauth(caller: Caller = Depends(get_current_caller)):
    """Build the Google consent URL; the frontend posts the returned code to /connect"""
    authorize(caller, "calendar.connect")
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google Calendar not configured")

    scopes = " ".join(GOOGLE_CALENDAR_SCOPES)
    auth_url = (
        f"{GOOGLE_AUTH_URL}"
        f"?client_id={GOOGLE_CLIENT_ID}"
        f"&redirect_uri={GOOGLE_REDIRECT_URI}"
        f"&response_type=code"
        f"&scope={scopes}"
        f"&access_type=offline"
        f"&prompt=consent"
        f"&state={caller.id}"
    )

    logger.info(f"Google Calendar OAuth initiated for doctor: {caller.id}")
    return {"authorizationUrl": auth_url}


@router.post("/connect")
async def connect_google_calendar(
    data: ConnectRequest,
    caller: Caller = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    """Exchange the OAuth code and store the encrypted tokens"""
    authorize(caller, "calendar.connect")

    tokens = await exchange_code(data.code)
    if not tokens:
        raise HTTPException(status_code=400, detail="Failed to exchange authorization code")

    access_token = tokens.get("access_token")
    refresh_token = tokens.get("refresh_token")
    expires_in = tokens.get("expires_in", 3600)
    if not access_token or not refresh_token:
        raise HTTPException(status_code=400, detail="Invalid token response")

    google_email = await fetch_google_email(access_token)
    token_expires_at = datetime.utcnow() + timedelta(seconds=expires_in)

    try:
        integration = get_integration(db, caller.id)
        if integration:
            integration.access_token = encrypt_token(access_token)
            integration.refresh_token = encrypt_token(refresh_token)
            integration.token_expires_at = token_expires_at
            integration.google_user_email = google_email
            integration.updated_at = datetime.utcnow()
        else:
            integration = GoogleCalendarIntegration(
                user_id=caller.id,
                access_token=encrypt_token(access_token),
                refresh_token=encrypt_token(refresh_token),
                token_expires_at=token_expires_at,
                google_user_email=google_email,
                google_calendar_id="primary",
            )
            db.add(integration)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"✅ Google Calendar connected for doctor: {caller.id}")
    return {"success": True, "userEmail": google_email}


@router.delete("/disconnect")
async def disconnect_google_calendar(
    caller: Caller = Depends(get_current_caller), db: Session = Depends(get_db)
):
    """Disconnect Google Calendar integration"""
    integration = get_integration(db, caller.id)
    if not integration:
        raise HTTPException(status_code=404, detail="Google Calendar not connected")

    await revoke_token(integration)

    try:
        db.delete(integration)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"✅ Google Calendar disconnected for doctor: {caller.id}")
    return {"success": True}
