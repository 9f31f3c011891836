"""
Google Calendar Service
Creates video consultations (Google Meet) and keeps their times in sync
"""
import base64
import hashlib
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import httpx
from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI, SECRET_KEY
from ..models_google_calendar import GoogleCalendarIntegration

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"


def get_cipher() -> Fernet:
    """Fernet cipher derived from SECRET_KEY for OAuth tokens at rest"""
    key = base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest())
    return Fernet(key)


def encrypt_token(token: str) -> str:
    return get_cipher().encrypt(token.encode()).decode()


def decrypt_token(token: str) -> str:
    return get_cipher().decrypt(token.encode()).decode()


def get_integration(db: Session, user_id: str) -> Optional[GoogleCalendarIntegration]:
    return (
        db.query(GoogleCalendarIntegration)
        .filter(GoogleCalendarIntegration.user_id == user_id)
        .first()
    )


async def exchange_code(code: str) -> Optional[Dict[str, Any]]:
    """Exchange an OAuth authorization code for access and refresh tokens"""
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "redirect_uri": GOOGLE_REDIRECT_URI,
                    "grant_type": "authorization_code",
                },
            )
            if response.status_code != 200:
                logger.error(f"❌ Failed to exchange code for tokens: {response.text}")
                return None
            return response.json()
    except Exception as e:
        logger.error(f"❌ Error exchanging OAuth code: {str(e)}")
        return None


async def fetch_google_email(access_token: str) -> Optional[str]:
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
            )
            if response.status_code == 200:
                return response.json().get("email")
    except Exception as e:
        logger.warning(f"⚠️ Could not fetch Google user info: {str(e)}")
    return None


async def get_valid_access_token(integration: GoogleCalendarIntegration, db: Session) -> Optional[str]:
    """
    Get a valid access token, refreshing if necessary
    Returns None if refresh fails
    """
    try:
        # Check if token is expired or about to expire (within 5 minutes)
        if integration.token_expires_at > datetime.utcnow() + timedelta(minutes=5):
            return decrypt_token(integration.access_token)

        logger.info("🔄 Google Calendar token expired, refreshing...")
        refresh_token = decrypt_token(integration.refresh_token)

        async with httpx.AsyncClient() as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )

        if response.status_code != 200:
            logger.error(f"❌ Token refresh failed: {response.text}")
            return None

        tokens = response.json()
        new_access_token = tokens.get("access_token")
        expires_in = tokens.get("expires_in", 3600)

        if not new_access_token:
            logger.error("❌ No access token in refresh response")
            return None

        # Flushed, not committed: the caller's transaction owns the commit
        integration.access_token = encrypt_token(new_access_token)
        integration.token_expires_at = datetime.utcnow() + timedelta(seconds=expires_in)
        db.flush()

        logger.info("✅ Google Calendar token refreshed successfully")
        return new_access_token

    except Exception as e:
        logger.error(f"❌ Error getting valid access token: {str(e)}")
        return None


async def create_meet_event(
    integration: GoogleCalendarIntegration,
    db: Session,
    summary: str,
    description: str,
    start: datetime,
    end: datetime,
    attendees: Optional[list[str]] = None,
    timezone: str = "UTC",
) -> Optional[Dict[str, Any]]:
    """
    Create a calendar event with a Google Meet conference attached
    Returns the created event resource, None on failure
    """
    try:
        access_token = await get_valid_access_token(integration, db)
        if not access_token:
            logger.error("❌ Failed to get valid access token")
            return None

        event_data = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": timezone},
            "attendees": [{"email": email} for email in (attendees or []) if email],
            "conferenceData": {
                "createRequest": {
                    "requestId": str(uuid.uuid4()),
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }

        calendar_id = integration.google_calendar_id or "primary"
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{GOOGLE_CALENDAR_API}/calendars/{calendar_id}/events",
                params={"conferenceDataVersion": 1},
                headers={"Authorization": f"Bearer {access_token}"},
                json=event_data,
            )

        if response.status_code not in [200, 201]:
            logger.error(f"❌ Failed to create calendar event: {response.text}")
            return None

        event = response.json()
        logger.info(f"✅ Google Calendar event created: {event.get('id')}")
        return event

    except Exception as e:
        logger.error(f"❌ Error creating calendar event: {str(e)}")
        return None


def extract_meet_link(event: Optional[Dict[str, Any]]) -> Optional[str]:
    """URI of the first video entry point of an event's conference data"""
    if not event:
        return None
    entry_points = (event.get("conferenceData") or {}).get("entryPoints") or []
    for entry in entry_points:
        if entry.get("entryPointType") == "video" and entry.get("uri"):
            return entry["uri"]
    return None


async def patch_event_times(
    integration: GoogleCalendarIntegration,
    db: Session,
    event_id: str,
    start: datetime,
    end: datetime,
    timezone: str = "UTC",
) -> bool:
    """
    Move an existing calendar event to a new interval
    Returns True if successful, False otherwise
    """
    try:
        access_token = await get_valid_access_token(integration, db)
        if not access_token:
            logger.error("❌ Failed to get valid access token")
            return False

        calendar_id = integration.google_calendar_id or "primary"
        async with httpx.AsyncClient() as client:
            response = await client.patch(
                f"{GOOGLE_CALENDAR_API}/calendars/{calendar_id}/events/{event_id}",
                headers={"Authorization": f"Bearer {access_token}"},
                json={
                    "start": {"dateTime": start.isoformat(), "timeZone": timezone},
                    "end": {"dateTime": end.isoformat(), "timeZone": timezone},
                },
            )

        if response.status_code != 200:
            logger.error(f"❌ Failed to update calendar event: {response.text}")
            return False

        logger.info(f"✅ Google Calendar event updated: {event_id}")
        return True

    except Exception as e:
        logger.error(f"❌ Error updating calendar event: {str(e)}")
        return False


async def revoke_token(integration: GoogleCalendarIntegration) -> None:
    """Best-effort revocation of the stored access token at Google"""
    try:
        access_token = decrypt_token(integration.access_token)
        async with httpx.AsyncClient() as client:
            await client.post(GOOGLE_REVOKE_URL, params={"token": access_token})
    except Exception as e:
        logger.warning(f"⚠️ Failed to revoke Google tokens: {str(e)}")
