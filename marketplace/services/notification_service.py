"""
Push notifications through Firebase Cloud Messaging (HTTP v1 API).

Every call is fire-and-forget: failures are logged and reported as ``False``,
never raised, so a penalty mutation is not undone because a push failed.
"""
import json
import logging
from pathlib import Path
from typing import Optional

import requests
from fastapi import BackgroundTasks
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from marketplace.core.config import settings

logger = logging.getLogger(__name__)

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"


class NotificationService:
    SERVICE_ACCOUNT_PATH: Optional[str] = None
    PROJECT_ID: Optional[str] = None

    @staticmethod
    def initialize():
        """Read the project id from the service account file. Called once at startup."""
        NotificationService.SERVICE_ACCOUNT_PATH = settings.FCM_SERVICE_ACCOUNT_PATH
        service_account_file = Path(NotificationService.SERVICE_ACCOUNT_PATH)
        if not service_account_file.exists():
            logger.warning(
                f"Service account file not found at {service_account_file}, push notifications disabled"
            )
            return

        try:
            with open(service_account_file, "r") as f:
                NotificationService.PROJECT_ID = json.load(f).get("project_id")
        except (OSError, ValueError) as e:
            logger.error(f"Error reading service account file: {e}")
            return

        if NotificationService.PROJECT_ID:
            logger.info(f"FCM initialized for project {NotificationService.PROJECT_ID}")
        else:
            logger.warning("Could not read project_id from service account file")

    @staticmethod
    def get_access_token() -> Optional[str]:
        if not NotificationService.SERVICE_ACCOUNT_PATH:
            return None
        service_account_file = Path(NotificationService.SERVICE_ACCOUNT_PATH)
        if not service_account_file.exists():
            return None

        try:
            credentials = service_account.Credentials.from_service_account_file(
                str(service_account_file), scopes=[FCM_SCOPE]
            )
            credentials.refresh(Request())
            return credentials.token
        except (GoogleAuthError, OSError, ValueError) as e:
            logger.error(f"Error getting FCM access token: {e}")
            return None

    @staticmethod
    def send_notification(fcm_token: str, title: str, body: str, data: Optional[dict] = None) -> bool:
        if not fcm_token or not fcm_token.strip():
            logger.debug("FCM token is empty, notification skipped")
            return False
        if not NotificationService.PROJECT_ID:
            logger.debug("FCM project not configured, notification skipped")
            return False

        access_token = NotificationService.get_access_token()
        if not access_token:
            return False

        url = f"https://fcm.googleapis.com/v1/projects/{NotificationService.PROJECT_ID}/messages:send"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        # "token" targets one device; FCM data values must be strings
        message = {
            "message": {
                "token": fcm_token.strip(),
                "notification": {"title": title, "body": body},
            }
        }
        if data:
            message["message"]["data"] = {k: str(v) for k, v in data.items()}

        try:
            response = requests.post(url, headers=headers, json=message, timeout=10)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error sending notification: {e}")
            return False

        if "name" in response.json():
            logger.info(f"Notification sent: {title}")
            return True
        logger.warning(f"Unexpected FCM response: {response.text}")
        return False

    @staticmethod
    def notify_account(
        db,
        ref,
        title: str,
        body: str,
        data: Optional[dict] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> bool:
        """
        Push to a customer or provider. Never raises.

        With ``background_tasks`` the FCM call is queued to run after the
        response is sent and ``True`` means queued, not delivered.
        """
        from marketplace.features.account.store import AccountStore

        try:
            account = AccountStore.find(db, ref)
            if account is None:
                logger.warning(f"Notification target not found: {ref}")
                return False
            if not account.fcm_token:
                logger.debug(f"{ref} has no FCM token, notification skipped")
                return False
            if background_tasks is not None:
                background_tasks.add_task(NotificationService.send_notification, account.fcm_token, title, body, data)
                return True
            return NotificationService.send_notification(account.fcm_token, title, body, data)
        except Exception:
            logger.exception(f"Notification to {ref} failed")
            return False
