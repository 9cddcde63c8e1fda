"""Firebase Admin SDK initialization."""

import logging

import firebase_admin
from firebase_admin import credentials

from .config import Settings

logger = logging.getLogger(__name__)

# Initialize Firebase Admin SDK once per process
_firebase_app = None


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """Get or initialize the Firebase app.

    Uses the configured service account when present, otherwise
    Application Default Credentials (the managed runtime's identity, or
    the emulator when FIRESTORE_EMULATOR_HOST is set).
    """
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None

    if settings.firebase_credentials_configured:
        # Handle escaped newlines in private key
        private_key = settings.firebase_private_key.replace("\\n", "\n")
        cred = credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key": private_key,
            "client_email": settings.firebase_client_email,
            "token_uri": "https://oauth2.googleapis.com/token",
        })
    else:
        logger.warning("Firebase service account not configured, using application default credentials")
        cred = credentials.ApplicationDefault()

    _firebase_app = firebase_admin.initialize_app(cred, options)
    logger.info("Firebase Admin SDK initialized successfully")
    return _firebase_app
