"""
Firestore document access.

Screens and services go through these helpers instead of touching the client
directly. Documents come back as plain dicts with an added 'id' key.
"""
import logging
import threading
from datetime import datetime, timezone

from firebase_admin import firestore
from google.cloud.firestore_v1 import FieldFilter

from . import firebase

logger = logging.getLogger(__name__)

SERVER_TIMESTAMP = firestore.SERVER_TIMESTAMP
DESCENDING = firestore.Query.DESCENDING
ASCENDING = firestore.Query.ASCENDING

# Firestore 'in' filters accept at most 30 values
IN_QUERY_LIMIT = 30

# Collections
USERS = 'users'
ADMINS = 'admins'
TEACHER_REQUESTS = 'teacherRequests'
TEACHERS = 'teachers'
STUDENTS = 'students'
LOGS = 'logs'
ADMIN_ACTIONS = 'adminActions'
TEACHER_LOGINS = 'teacherLogins'
STUDENT_LOGINS = 'studentLogins'
USER_STATS = 'userStats'
ASSESSMENT_RESULTS = 'adaptiveAssessmentResults'
LESSON_RETENTION = 'lessonRetention'
VISIT_TRACKING = 'visitTracking'
CONTENTS = 'contents'


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def doc_to_dict(doc_snapshot):
    """Convert a DocumentSnapshot to a dict with 'id' field."""
    if not doc_snapshot.exists:
        return None
    d = doc_snapshot.to_dict() or {}
    d['id'] = doc_snapshot.id
    return d


def query_to_list(query_ref):
    """Run a query and return a list of dicts."""
    return [doc_to_dict(doc) for doc in query_ref.stream()]


def now():
    return datetime.now(timezone.utc)


def to_datetime(value):
    """Normalise a stored timestamp to an aware datetime, or None.

    Accepts Firestore timestamps (datetime subclasses), naive datetimes
    (taken as UTC), ISO-8601 strings and epoch seconds.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def sort_key_desc(field):
    """Sort key putting newest first and missing timestamps last."""
    epoch = datetime.fromtimestamp(0, tz=timezone.utc)

    def key(item):
        return to_datetime(item.get(field)) or epoch
    return key


def collection(name):
    return firebase.get_db().collection(name)


def where(query_ref, field, op, value):
    return query_ref.where(filter=FieldFilter(field, op, value))


# ---------------------------------------------------------------------------
# Single documents
# ---------------------------------------------------------------------------

def get_document(collection_name, doc_id):
    """Get a document by ID. Returns dict or None."""
    if not doc_id:
        return None
    return doc_to_dict(collection(collection_name).document(doc_id).get())


def set_document(collection_name, doc_id, data, merge=False):
    collection(collection_name).document(doc_id).set(data, merge=merge)


def update_document(collection_name, doc_id, data):
    collection(collection_name).document(doc_id).update(data)


def add_document(collection_name, data):
    """Add a document with a generated ID. Returns the new ID."""
    _, doc_ref = collection(collection_name).add(data)
    return doc_ref.id


def delete_document(collection_name, doc_id):
    collection(collection_name).document(doc_id).delete()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def fetch_all(collection_name):
    return query_to_list(collection(collection_name))


def fetch_where(collection_name, filters=(), order_by=None, descending=False, limit=None):
    """Run a filtered query.

    filters is a sequence of (field, op, value) tuples.
    """
    query_ref = collection(collection_name)
    for field, op, value in filters:
        query_ref = where(query_ref, field, op, value)
    if order_by:
        query_ref = query_ref.order_by(order_by, direction=DESCENDING if descending else ASCENDING)
    if limit:
        query_ref = query_ref.limit(limit)
    return query_to_list(query_ref)


def fetch_in(collection_name, field, values, filters=()):
    """Fetch documents whose field is in values, batching past the 'in' limit."""
    values = [v for v in values if v]
    if not values:
        return []
    results = []
    for i in range(0, len(values), IN_QUERY_LIMIT):
        batch = values[i:i + IN_QUERY_LIMIT]
        results.extend(fetch_where(collection_name, list(filters) + [(field, 'in', batch)]))
    return results


def count_where(collection_name, filters=()):
    return len(fetch_where(collection_name, filters))


# ---------------------------------------------------------------------------
# Live queries
# ---------------------------------------------------------------------------

class LiveQuery:
    """Push-based subscription to a Firestore query.

    on_change(rows, changes) is called on the watch thread with the full
    result set each time the query snapshot changes. on_error(exc) is called
    if converting or delivering a snapshot fails.
    """

    def __init__(self, query_ref, on_change, on_error=None):
        self.query_ref = query_ref
        self.on_change = on_change
        self.on_error = on_error
        self._watch = None
        self._lock = threading.Lock()

    def _handle(self, docs, changes, read_time):
        try:
            rows = [doc_to_dict(doc) for doc in docs]
            self.on_change(rows, changes)
        except Exception as e:
            logger.error("Live query callback failed: %s", e)
            if self.on_error:
                self.on_error(e)

    def start(self):
        with self._lock:
            if self._watch is None:
                self._watch = self.query_ref.on_snapshot(self._handle)
        return self

    def stop(self):
        with self._lock:
            if self._watch is not None:
                self._watch.unsubscribe()
                self._watch = None

    @property
    def active(self):
        return self._watch is not None

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
