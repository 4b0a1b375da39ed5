from datetime import datetime, timedelta
from flask import current_app
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from itsdangerous import BadData, URLSafeTimedSerializer
from app.errors import UpstreamError
from app.utils.time_utils import isoformat_utc, parse_rfc3339
from app import db
import logging

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
REFRESH_MARGIN = timedelta(minutes=5)


class GoogleCalendarError(UpstreamError):
    default_message = 'Google Calendar request failed'


class GoogleCalendarService:
    def __init__(self):
        # Initialize without current_app to avoid context issues
        self._client_id = None
        self._client_secret = None
        self._redirect_uri = None
        self._scopes = None

    # Settings are read per call so each app (and each test app) sees its own config
    @property
    def client_id(self):
        return self._client_id or current_app.config.get('GOOGLE_CLIENT_ID')

    @property
    def client_secret(self):
        return self._client_secret or current_app.config.get('GOOGLE_CLIENT_SECRET')

    @property
    def redirect_uri(self):
        return self._redirect_uri or current_app.config.get('GOOGLE_REDIRECT_URI')

    @property
    def scopes(self):
        return self._scopes or current_app.config.get('GOOGLE_SCOPES', [])

    def is_configured(self):
        """Check if Google Calendar is properly configured"""
        return bool(self.client_id and self.client_secret and self.scopes)

    def _state_serializer(self):
        return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt='google-oauth-state')

    def sign_state(self, user_id):
        return self._state_serializer().dumps({'user_id': user_id})

    def read_state(self, state):
        """Return the user id carried by a signed state, or None if it is forged or stale"""
        try:
            data = self._state_serializer().loads(
                state, max_age=current_app.config.get('OAUTH_STATE_MAX_AGE', 600)
            )
            return int(data['user_id'])
        except (BadData, KeyError, TypeError, ValueError):
            return None

    def _build_flow(self):
        flow = Flow.from_client_config(
            {
                "web": {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                    "token_uri": TOKEN_URI,
                    "redirect_uris": [self.redirect_uri]
                }
            },
            scopes=self.scopes,
            autogenerate_code_verifier=False
        )
        flow.redirect_uri = self.redirect_uri
        return flow

    def get_authorization_url(self, user_id):
        """Get Google OAuth authorization URL for a user"""
        if not self.is_configured():
            raise ValueError("Google Calendar not configured")

        auth_url, _ = self._build_flow().authorization_url(
            access_type='offline',
            include_granted_scopes='true',
            state=self.sign_state(user_id),
            prompt='consent'  # Force consent screen to get refresh token
        )

        return auth_url

    def handle_oauth_callback(self, authorization_code, user):
        """
        Exchange the authorization code and store the token triple on the user.

        Google only returns a refresh token on the first consent; when it is
        missing the stored one is kept. Raises GoogleCalendarError on failure.
        """
        if not self.is_configured():
            raise ValueError("Google Calendar not configured")

        flow = self._build_flow()
        try:
            # Exchange authorization code for tokens
            flow.fetch_token(code=authorization_code)
        except Exception as e:
            logger.error(f"Error exchanging Google authorization code for user {user.id}: {str(e)}")
            raise GoogleCalendarError('Google token exchange failed') from e

        credentials = flow.credentials
        logger.info(f"Tokens received from Google for user {user.id}: "
                    f"access_token={'present' if credentials.token else 'missing'}, "
                    f"refresh_token={'present' if credentials.refresh_token else 'missing'}")

        user.google_access_token = credentials.token
        user.google_token_expiry = credentials.expiry
        if credentials.refresh_token:
            user.set_google_refresh_token(credentials.refresh_token)
        else:
            logger.warning(f"No refresh token in Google response for user {user.id}, keeping existing one")

        db.session.commit()
        logger.info(f"Google Calendar connected successfully for user {user.id}")
        return user

    def get_credentials(self, user):
        """
        Credentials for one linked account, refreshed and persisted first if the
        access token is absent or about to expire. None when the user is not linked.
        """
        refresh_token = user.get_google_refresh_token()
        if not refresh_token:
            return None

        credentials = Credentials(
            token=user.google_access_token,
            refresh_token=refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=self.scopes,
            expiry=user.google_token_expiry
        )

        if self._needs_refresh(user):
            try:
                credentials.refresh(Request())
            except GoogleAuthError as e:
                logger.error(f"Error refreshing token for user {user.id}: {str(e)}")
                raise GoogleCalendarError('Google token refresh failed') from e
            self._store_refreshed_token(user, credentials)

        return credentials

    @staticmethod
    def _needs_refresh(user):
        """Check if token needs to be refreshed (absent, or expires within 5 minutes)"""
        if not user.google_access_token or not user.google_token_expiry:
            return True
        return datetime.utcnow() >= (user.google_token_expiry - REFRESH_MARGIN)

    @staticmethod
    def _store_refreshed_token(user, credentials):
        user.google_access_token = credentials.token
        user.google_token_expiry = credentials.expiry
        # Google may rotate the refresh token
        if credentials.refresh_token and credentials.refresh_token != user.get_google_refresh_token():
            user.set_google_refresh_token(credentials.refresh_token)
        db.session.commit()
        logger.info(f"Refreshed Google Calendar token for user {user.id}")

    def get_calendar_service(self, user):
        """Get Google Calendar service for a user, or None if not linked"""
        credentials = self.get_credentials(user)
        if not credentials:
            return None
        return build('calendar', 'v3', credentials=credentials, cache_discovery=False)

    def get_busy_times(self, user, time_min, time_max, calendar_id='primary'):
        """
        Busy periods of one linked account between two naive UTC datetimes.

        Returns a list of {'start', 'end'} naive UTC datetimes; [] if the user is
        not linked. Raises GoogleCalendarError if Google fails.
        """
        service = self.get_calendar_service(user)
        if not service:
            return []

        body = {
            "timeMin": isoformat_utc(time_min),
            "timeMax": isoformat_utc(time_max),
            "items": [{"id": calendar_id}]
        }

        try:
            freebusy_result = service.freebusy().query(body=body).execute()
        except (HttpError, GoogleAuthError, OSError) as e:
            logger.error(f"Google Calendar API error for user {user.id}: {str(e)}")
            raise GoogleCalendarError(f'Google free/busy query failed for user {user.id}') from e

        calendar = freebusy_result.get('calendars', {}).get(calendar_id, {})
        if calendar.get('errors'):
            logger.error(f"Google free/busy errors for user {user.id}: {calendar['errors']}")
            raise GoogleCalendarError(f'Google free/busy query failed for user {user.id}')

        busy_periods = [
            {'start': parse_rfc3339(period['start']), 'end': parse_rfc3339(period['end'])}
            for period in calendar.get('busy', [])
        ]
        logger.info(f"Fetched {len(busy_periods)} busy periods from Google for user {user.id}")
        return busy_periods

    def list_events(self, user, time_min, time_max, max_results=100):
        """Events on the user's primary calendar. Raises GoogleCalendarError if Google fails."""
        service = self.get_calendar_service(user)
        if not service:
            return []

        try:
            response = service.events().list(
                calendarId='primary',
                timeMin=isoformat_utc(time_min),
                timeMax=isoformat_utc(time_max),
                maxResults=max_results,
                singleEvents=True,
                orderBy='startTime'
            ).execute()
        except (HttpError, GoogleAuthError, OSError) as e:
            logger.error(f"Google Calendar API error listing events for user {user.id}: {str(e)}")
            raise GoogleCalendarError(f'Google events listing failed for user {user.id}') from e

        return response.get('items', [])

# Global instance
google_calendar_service = GoogleCalendarService()
