"""
Shared test fixtures for the EasyMind console backend.
An in-memory Firestore stands in for the real client and the Firebase Auth,
Identity Toolkit and Resend calls are replaced with recorders.
Zero network calls.
"""
import copy
import itertools
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from google.api_core.exceptions import NotFound

# Wednesday 14 Oct 2026, 12:00 in Asia/Manila
NOW = datetime(2026, 10, 14, 4, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════
# IN-MEMORY FIRESTORE
# ══════════════════════════════════════════════════════════════

def _compare(op, actual, expected):
    if op == '==':
        return actual == expected
    if op == '!=':
        return actual != expected
    if op == 'in':
        return actual in expected
    if op == 'not-in':
        return actual not in expected
    if op == 'array-contains':
        return isinstance(actual, list) and expected in actual
    try:
        if op == '<':
            return actual < expected
        if op == '<=':
            return actual <= expected
        if op == '>':
            return actual > expected
        if op == '>=':
            return actual >= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator {op}")


class FakeSnapshot:
    def __init__(self, doc_id, data, reference=None):
        self.id = doc_id
        self._data = data
        self.reference = reference

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeWatch:
    def __init__(self, query, callback):
        self.query = query
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        self.active = False
        self.query.db.watches.remove(self)

    def fire(self, changes=None):
        docs = self.query.stream()
        if changes is None:
            changes = [SimpleNamespace(type=SimpleNamespace(name='ADDED'), document=d) for d in docs]
        self.callback(docs, changes, self.query.db.clock())


class FakeQuery:
    def __init__(self, db, name, filters=(), orders=(), limit_to=None):
        self.db = db
        self.name = name
        self.filters = list(filters)
        self.orders = list(orders)
        self.limit_to = limit_to

    def _copy(self, **changes):
        params = dict(filters=self.filters, orders=self.orders, limit_to=self.limit_to)
        params.update(changes)
        return FakeQuery(self.db, self.name, **params)

    def where(self, filter=None):
        return self._copy(filters=self.filters + [(filter.field_path, filter.op_string, filter.value)])

    def order_by(self, field, direction='ASCENDING'):
        return self._copy(orders=self.orders + [(field, direction)])

    def limit(self, count):
        return self._copy(limit_to=count)

    def stream(self):
        rows = []
        for doc_id, data in self.db.collections.get(self.name, {}).items():
            if all(field in data and _compare(op, data[field], value)
                   for field, op, value in self.filters):
                rows.append((doc_id, data))
        for field, direction in reversed(self.orders):
            rows = [r for r in rows if field in r[1]]
            rows.sort(key=lambda r: (r[1][field] is not None, r[1][field]), reverse=direction == 'DESCENDING')
        if self.limit_to:
            rows = rows[:self.limit_to]
        return [FakeSnapshot(doc_id, data) for doc_id, data in rows]

    def get(self):
        return self.stream()

    def on_snapshot(self, callback):
        watch = FakeWatch(self, callback)
        self.db.watches.append(watch)
        watch.fire()
        return watch


class FakeDocument:
    def __init__(self, db, name, doc_id):
        self.db = db
        self.name = name
        self.id = doc_id

    def _store(self):
        return self.db.collections.setdefault(self.name, {})

    def get(self):
        data = self._store().get(self.id)
        return FakeSnapshot(self.id, data, self)

    def set(self, data, merge=False):
        data = self.db.resolve(data)
        if merge and self.id in self._store():
            self._store()[self.id].update(data)
        else:
            self._store()[self.id] = data
        self.db.notify(self.name)

    def update(self, data):
        if self.id not in self._store():
            raise NotFound(f"No document to update: {self.name}/{self.id}")
        self._store()[self.id].update(self.db.resolve(data))
        self.db.notify(self.name)

    def delete(self):
        self._store().pop(self.id, None)
        self.db.notify(self.name)


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)

    def document(self, doc_id=None):
        return FakeDocument(self.db, self.name, doc_id or self.db.next_id())

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return self.db.clock(), ref


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.watches = []
        self.clock = lambda: NOW
        self._ids = itertools.count(1)

    def next_id(self):
        return f"doc{next(self._ids):04d}"

    def collection(self, name):
        return FakeCollection(self, name)

    def resolve(self, data):
        from easymind import store
        resolved = copy.deepcopy({k: v for k, v in data.items() if v is not store.SERVER_TIMESTAMP})
        for key, value in data.items():
            if value is store.SERVER_TIMESTAMP:
                resolved[key] = self.clock()
        return resolved

    def notify(self, name):
        for watch in list(self.watches):
            if watch.query.name == name:
                watch.fire()

    # Test helpers
    def seed(self, name, doc_id, data):
        self.collections.setdefault(name, {})[doc_id] = copy.deepcopy(data)

    def docs(self, name):
        return self.collections.get(name, {})

    def doc(self, name, doc_id):
        return self.collections.get(name, {}).get(doc_id)


# ══════════════════════════════════════════════════════════════
# AUTH / IDENTITY / EMAIL DOUBLES
# ══════════════════════════════════════════════════════════════

class FakeAuth:
    """Stands in for the firebase_admin.auth module."""

    def __init__(self):
        self.users = {}

    def add_user(self, uid, email=None, display_name=None, photo_url=None, claims=None):
        self.users[uid] = SimpleNamespace(
            uid=uid, email=email, display_name=display_name,
            photo_url=photo_url, custom_claims=claims,
        )

    def get_user(self, uid):
        if uid not in self.users:
            raise ValueError(f"No user record found for the provided user ID: {uid}")
        return self.users[uid]

    def set_custom_user_claims(self, uid, claims):
        self.get_user(uid).custom_claims = dict(claims)

    def update_user(self, uid, display_name=None, **kwargs):
        self.get_user(uid).display_name = display_name


class FakeIdentity:
    """Records Identity Toolkit calls; accounts maps email -> (password, uid)."""

    def __init__(self):
        self.accounts = {}
        self.reset_emails = []
        self.verification_tokens = []
        self.fail_verification = False

    def sign_in_with_password(self, email, password):
        from easymind.identity import IdentityError
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise IdentityError('auth/invalid-credential', 'INVALID_LOGIN_CREDENTIALS')
        return {
            "uid": account[1],
            "email": email,
            "id_token": f"token-{account[1]}",
            "refresh_token": "refresh",
        }

    def sign_up(self, email, password):
        from easymind.identity import IdentityError
        if email in self.accounts:
            raise IdentityError('auth/email-already-in-use', 'EMAIL_EXISTS')
        uid = f"uid-{len(self.accounts) + 1}"
        self.accounts[email] = (password, uid)
        return {"uid": uid, "email": email, "id_token": f"token-{uid}", "refresh_token": "refresh"}

    def send_password_reset(self, email):
        self.reset_emails.append(email)

    def send_email_verification(self, id_token):
        from easymind.identity import IdentityError
        if self.fail_verification:
            raise IdentityError('auth/internal-error', 'boom')
        self.verification_tokens.append(id_token)


class FakeEmailer:
    def __init__(self):
        self.sent = []

    def send_verification_code(self, email, code):
        self.sent.append(("code", email, code))
        return True

    def send_approval_notice(self, email, teacher_name):
        self.sent.append(("approval", email, teacher_name))
        return True


# ══════════════════════════════════════════════════════════════
# FIXTURES
# ══════════════════════════════════════════════════════════════

@pytest.fixture
def db(monkeypatch):
    """Fresh in-memory Firestore wired into easymind.firebase."""
    import easymind.firebase as firebase
    fake = FakeFirestore()
    monkeypatch.setattr(firebase, "get_db", lambda: fake)
    return fake


@pytest.fixture
def fake_auth(monkeypatch):
    import easymind.firebase as firebase
    fake = FakeAuth()
    monkeypatch.setattr(firebase, "get_auth", lambda: fake)
    return fake


@pytest.fixture
def fake_identity(monkeypatch):
    import easymind.identity as identity
    fake = FakeIdentity()
    for name in ("sign_in_with_password", "sign_up", "send_password_reset", "send_email_verification"):
        monkeypatch.setattr(identity, name, getattr(fake, name))
    return fake


@pytest.fixture
def emailer(monkeypatch):
    import easymind.services.email_service as email_service
    fake = FakeEmailer()
    monkeypatch.setattr(email_service, "_emailer", fake)
    return fake


@pytest.fixture
def tokens(monkeypatch):
    """Map of bearer token -> decoded claims used by validate_token."""
    import easymind.auth as auth
    claims = {
        "admin-token": {"user_id": "admin1", "email": "admin@easymind.app", "role": "admin"},
        "teacher-token": {"user_id": "teacher1", "email": "ana@school.ph", "role": "teacher"},
        "student-token": {"user_id": "someone", "email": "x@y.z", "role": None},
    }
    monkeypatch.setattr(auth, "validate_token", lambda token: claims.get(token))
    return claims


@pytest.fixture
def attempts():
    from easymind.services import admin_login
    admin_login.attempts._counts.clear()
    yield admin_login.attempts
    admin_login.attempts._counts.clear()


@pytest.fixture
def app(db, fake_auth, fake_identity, emailer, tokens, attempts):
    from easymind.app import create_app
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(db):
    """Verified admin."""
    db.seed("users", "admin1", {"email": "admin@easymind.app", "verified": True})
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def teacher_headers(db):
    """Active teacher 'teacher1'."""
    db.seed("teacherRequests", "teacher1", {
        "firstName": "Ana", "lastName": "Reyes", "email": "ana@school.ph",
        "contactNo": "09171234567", "role": "teacher", "status": "Active",
        "createdAt": datetime(2026, 9, 1, tzinfo=timezone.utc),
    })
    return {"Authorization": "Bearer teacher-token"}
