"""
Firebase Admin wiring.

A single firebase_admin app is created on first use; everything else asks for
the Firestore client through get_db() so tests can swap it out.
"""
import logging

import firebase_admin
from firebase_admin import auth, credentials, firestore

from .config import FIREBASE_CREDENTIALS, FIREBASE_PROJECT_ID

logger = logging.getLogger(__name__)

_app = None
_db = None


def get_app():
    """Get or create the firebase_admin app."""
    global _app
    if _app is None:
        try:
            _app = firebase_admin.get_app()
        except ValueError:
            options = {"projectId": FIREBASE_PROJECT_ID}
            if FIREBASE_CREDENTIALS:
                cred = credentials.Certificate(FIREBASE_CREDENTIALS)
            else:
                cred = credentials.ApplicationDefault()
            _app = firebase_admin.initialize_app(cred, options)
            logger.info("Firebase app initialised for project %s", FIREBASE_PROJECT_ID)
    return _app


def get_db():
    """Get or create the Firestore client."""
    global _db
    if _db is None:
        _db = firestore.client(app=get_app())
    return _db


def get_auth():
    """Return the firebase_admin auth module bound to our app."""
    get_app()
    return auth
