# realty_booking/services/calendar/google_calendar_service.py
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

import google_auth_httplib2
import httplib2
import requests
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from realty_booking.config.settings import get_settings
from realty_booking.core.exceptions import (
    NotConnectedException,
    RemoteEventNotFoundException,
    UpstreamUnavailableException,
    ValidationException,
)
from realty_booking.models.calendar_integration import CalendarIntegration
from realty_booking.services.availability.intervals import Interval
from realty_booking.services.availability.settings_service import BookingSettingsService
from realty_booking.services.calendar.calendar_adapter import (
    CalendarAdapter,
    CalendarSummary,
    Connected,
    ConnectionStatus,
    Disconnected,
    EventDraft,
    RemoteEvent,
)
from realty_booking.utils.encryption import decrypt_token, encrypt_token

settings = get_settings()

logger = logging.getLogger(__name__)

PRIMARY_CALENDAR = "primary"
REVOKE_URL = "https://oauth2.googleapis.com/revoke"
OAUTH_STATE_TYPE = "calendar_oauth"


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """google-auth reports expiry as naive UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _parse_event_time(value: Optional[Dict[str, Any]]):
    """Google event time: {"dateTime": ...} for timed events, {"date": ...} for all-day ones"""
    if not value:
        return None
    if value.get("dateTime"):
        parsed = datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    if value.get("date"):
        return date.fromisoformat(value["date"])
    return None


class GoogleCalendarAdapter(CalendarAdapter):
    """Google Calendar over stored, Fernet-encrypted OAuth credentials"""

    SCOPES = ['https://www.googleapis.com/auth/calendar']

    def __init__(self, db: Session):
        self.db = db
        self.client_config = {
            "web": {
                "client_id": settings.GOOGLE_CLIENT_ID,
                "client_secret": settings.GOOGLE_CLIENT_SECRET,
                "redirect_uris": [settings.GOOGLE_REDIRECT_URI],
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token"
            }
        }
        self.timeout = settings.GOOGLE_API_TIMEOUT_SECONDS

    # ========== OAUTH CONNECT FLOW ==========

    def _flow(self) -> Flow:
        return Flow.from_client_config(
            self.client_config,
            scopes=self.SCOPES,
            redirect_uri=self.client_config['web']['redirect_uris'][0]
        )

    def generate_authorization_url(self, admin_id: UUID) -> str:
        """Step 1: OAuth URL for the admin; state is a short-lived signed token"""
        if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
            raise UpstreamUnavailableException("Google OAuth client is not configured")

        state = jwt.encode(
            {
                "sub": str(admin_id),
                "type": OAUTH_STATE_TYPE,
                "exp": datetime.now(timezone.utc) + timedelta(minutes=10),
            },
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM
        )

        authorization_url, _ = self._flow().authorization_url(
            access_type='offline',  # Gets refresh token
            include_granted_scopes='true',
            prompt='consent',  # Force consent screen to get refresh token
            state=state
        )

        logger.info(f"Generated Google authorization URL for admin {admin_id}")
        return authorization_url

    @staticmethod
    def admin_id_from_state(state: str) -> UUID:
        try:
            payload = jwt.decode(state, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
            if payload.get("type") != OAUTH_STATE_TYPE:
                raise ValidationException("Invalid OAuth state")
            return UUID(payload["sub"])
        except (JWTError, KeyError, ValueError) as e:
            raise ValidationException(f"Invalid OAuth state: {e}")

    def handle_oauth_callback(self, code: str, state: str) -> CalendarIntegration:
        """Step 2: Exchange authorization code for tokens and store them"""
        admin_id = self.admin_id_from_state(state)

        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            logger.error(f"Failed to exchange code for tokens for admin {admin_id}: {e}")
            raise UpstreamUnavailableException("Failed to exchange authorization code")
        credentials = flow.credentials

        calendar_list = self._execute(
            self._build(credentials).calendarList().list(),
            "list calendars"
        )

        integration = self._integration(admin_id)
        if integration is None:
            integration = CalendarIntegration(admin_id=admin_id, provider='google')
            self.db.add(integration)

        integration.is_active = True
        integration.access_token_encrypted = encrypt_token(credentials.token)
        if credentials.refresh_token:
            integration.refresh_token_encrypted = encrypt_token(credentials.refresh_token)
        integration.token_expires_at = _aware(credentials.expiry)
        integration.provider_config = {
            'calendar_list': [
                {'id': cal['id'], 'name': cal.get('summary', cal['id']), 'primary': bool(cal.get('primary'))}
                for cal in calendar_list.get('items', [])
            ]
        }
        self.db.commit()

        logger.info(f"Stored Google calendar integration {integration.id} for admin {admin_id}")
        return integration

    # ========== CREDENTIALS ==========

    def _integration(self, admin_id: UUID) -> Optional[CalendarIntegration]:
        return self.db.query(CalendarIntegration).filter(
            CalendarIntegration.admin_id == admin_id,
            CalendarIntegration.provider == 'google'
        ).first()

    def _active_integration(self, admin_id: UUID) -> CalendarIntegration:
        integration = self._integration(admin_id)
        if not integration or not integration.is_active or not integration.refresh_token_encrypted:
            raise NotConnectedException("Google Calendar is not connected")
        return integration

    def get_valid_credentials(self, integration: CalendarIntegration) -> Credentials:
        """Get valid credentials, refreshing if necessary"""
        now = datetime.now(timezone.utc)
        if integration.token_expires_at is None or integration.token_expires_at <= now + timedelta(minutes=5):
            return self.refresh_access_token(integration)

        return Credentials(
            token=decrypt_token(integration.access_token_encrypted),
            refresh_token=decrypt_token(integration.refresh_token_encrypted),
            token_uri=self.client_config['web']['token_uri'],
            client_id=self.client_config['web']['client_id'],
            client_secret=self.client_config['web']['client_secret']
        )

    def refresh_access_token(self, integration: CalendarIntegration) -> Credentials:
        """Refresh expired access token using refresh token"""
        credentials = Credentials(
            token=None,
            refresh_token=decrypt_token(integration.refresh_token_encrypted),
            token_uri=self.client_config['web']['token_uri'],
            client_id=self.client_config['web']['client_id'],
            client_secret=self.client_config['web']['client_secret']
        )
        try:
            credentials.refresh(Request())
        except (RefreshError, TransportError) as e:
            logger.warning(f"Token refresh failed for admin {integration.admin_id}: {e}")
            raise UpstreamUnavailableException("Could not refresh Google credentials")

        integration.access_token_encrypted = encrypt_token(credentials.token)
        integration.token_expires_at = _aware(credentials.expiry)
        self.db.commit()
        return credentials

    def _build(self, credentials: Credentials):
        http = google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=self.timeout))
        return build('calendar', 'v3', http=http, cache_discovery=False)

    def _service(self, admin_id: UUID):
        return self._build(self.get_valid_credentials(self._active_integration(admin_id)))

    def _execute(self, request, action: str, event_id: Optional[str] = None):
        """Run one API request, mapping every failure onto the adapter taxonomy"""
        try:
            return request.execute()
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            if event_id and status in (404, 410):
                raise RemoteEventNotFoundException(f"Google event {event_id} not found")
            logger.warning(f"Google API error during {action}: {status} {e}")
            raise UpstreamUnavailableException(f"Google Calendar {action} failed", details={"status": status})
        except (RefreshError, TransportError, httplib2.HttpLib2Error, OSError) as e:
            logger.warning(f"Google Calendar unreachable during {action}: {e}")
            raise UpstreamUnavailableException(f"Google Calendar {action} failed")

    # ========== ADAPTER CONTRACT ==========

    def connection_status(self, admin_id: UUID) -> ConnectionStatus:
        integration = self._integration(admin_id)
        if not integration or not integration.is_active or not integration.refresh_token_encrypted:
            return Disconnected()
        calendar_id = BookingSettingsService.get(self.db, admin_id).external_calendar_id
        return Connected(calendar_id=calendar_id)

    def list_calendars(self, admin_id: UUID) -> List[CalendarSummary]:
        service = self._service(admin_id)
        response = self._execute(service.calendarList().list(), "list calendars")
        return [
            CalendarSummary(
                id=item['id'],
                display_name=item.get('summaryOverride') or item.get('summary') or item['id'],
                is_primary=bool(item.get('primary')),
            )
            for item in response.get('items', [])
        ]

    def get_event(self, admin_id: UUID, calendar_id: Optional[str], event_id: str) -> RemoteEvent:
        service = self._service(admin_id)
        item = self._execute(
            service.events().get(calendarId=calendar_id or PRIMARY_CALENDAR, eventId=event_id),
            "get event",
            event_id=event_id
        )
        return RemoteEvent(
            id=item.get('id', event_id),
            status=item.get('status', 'confirmed'),
            start=_parse_event_time(item.get('start')),
            end=_parse_event_time(item.get('end')),
            summary=item.get('summary'),
            raw=item,
        )

    @staticmethod
    def _event_body(draft: EventDraft) -> Dict[str, Any]:
        body = {
            'summary': draft.summary,
            'start': {'dateTime': draft.start.isoformat(), 'timeZone': draft.time_zone},
            'end': {'dateTime': draft.end.isoformat(), 'timeZone': draft.time_zone},
        }
        if draft.description:
            body['description'] = draft.description
        if draft.location:
            body['location'] = draft.location
        if draft.attendees:
            body['attendees'] = [{'email': email} for email in draft.attendees]
        return body

    def create_event(self, admin_id: UUID, calendar_id: Optional[str], draft: EventDraft) -> str:
        service = self._service(admin_id)
        created = self._execute(
            service.events().insert(
                calendarId=calendar_id or PRIMARY_CALENDAR,
                body=self._event_body(draft),
                sendUpdates='all'
            ),
            "create event"
        )
        logger.info(f"Created Google event {created['id']} for admin {admin_id}")
        return created['id']

    def update_event(self, admin_id: UUID, calendar_id: Optional[str], event_id: str, draft: EventDraft) -> None:
        service = self._service(admin_id)
        self._execute(
            service.events().patch(
                calendarId=calendar_id or PRIMARY_CALENDAR,
                eventId=event_id,
                body=self._event_body(draft)
            ),
            "update event",
            event_id=event_id
        )

    def delete_event(self, admin_id: UUID, calendar_id: Optional[str], event_id: str) -> None:
        service = self._service(admin_id)
        self._execute(
            service.events().delete(calendarId=calendar_id or PRIMARY_CALENDAR, eventId=event_id),
            "delete event",
            event_id=event_id
        )

    def get_busy(self, admin_id: UUID, calendar_id: Optional[str], start: datetime, end: datetime) -> List[Interval]:
        calendar_id = calendar_id or PRIMARY_CALENDAR
        service = self._service(admin_id)
        response = self._execute(
            service.freebusy().query(body={
                'timeMin': start.astimezone(timezone.utc).isoformat(),
                'timeMax': end.astimezone(timezone.utc).isoformat(),
                'items': [{'id': calendar_id}],
            }),
            "free/busy query"
        )

        busy = []
        for period in response.get('calendars', {}).get(calendar_id, {}).get('busy', []):
            period_start = _parse_event_time({'dateTime': period['start']})
            period_end = _parse_event_time({'dateTime': period['end']})
            if period_start < period_end:
                busy.append(Interval(period_start, period_end))
        return busy

    def disconnect(self, admin_id: UUID) -> None:
        integration = self._integration(admin_id)
        if integration is None:
            return

        token = decrypt_token(integration.refresh_token_encrypted) or decrypt_token(integration.access_token_encrypted)
        if token:
            try:
                requests.post(
                    REVOKE_URL,
                    params={'token': token},
                    headers={'content-type': 'application/x-www-form-urlencoded'},
                    timeout=self.timeout
                )
            except requests.RequestException as e:
                # Credentials are dropped locally either way
                logger.warning(f"Token revocation failed for admin {admin_id}: {e}")

        integration.is_active = False
        integration.access_token_encrypted = None
        integration.refresh_token_encrypted = None
        integration.token_expires_at = None
        self.db.commit()
        logger.info(f"Disconnected Google Calendar for admin {admin_id}")
