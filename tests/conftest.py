import copy
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.api import create_app
from app.config import Settings
from core.db.errors import DuplicateEmailError, NoUpdateFieldsError, UnknownEmailError
from core.db.users import USER_ROLE, expiry_timestamp, hash_password, new_code, verify_password

PUBLIC_FIELDS = ("userid", "name", "email", "role", "created_at", "updated_at")


def _now():
    return datetime.now(timezone.utc)


class MemoryAccountStore:
    """In-memory stand-in for AccountStore with the same method surface."""

    def __init__(self, code_expiry_minutes=1):
        self.code_expiry_minutes = code_expiry_minutes
        self.users = {}
        self.verification = {}
        self.email_changes = {}
        self.resets = {}
        self.availability = {}
        self._next_id = 1

    def _fresh_code(self):
        return new_code(), expiry_timestamp(self.code_expiry_minutes)

    def _public(self, user):
        return {k: user[k] for k in PUBLIC_FIELDS}

    def _hash(self, raw_password):
        password_hash = hash_password(raw_password)
        if password_hash is None:
            raise ValueError("password could not be hashed")
        return password_hash

    def _by_email(self, email):
        for user in self.users.values():
            if user["email"] == email:
                return user
        return None

    def init_schema(self):
        pass

    def exists_by_email(self, email):
        return self._by_email(email) is not None

    def create_user(self, name, email, raw_password):
        if self._by_email(email):
            raise DuplicateEmailError(email)
        userid = f"u{self._next_id}"
        self._next_id += 1
        now = _now()
        self.users[userid] = {
            "userid": userid,
            "name": name,
            "email": email,
            "role": [USER_ROLE],
            "created_at": now,
            "updated_at": now,
            "passwordhash": self._hash(raw_password),
            "last_logout_at": None,
        }
        code, expires_at = self._fresh_code()
        self.verification[userid] = {"code": code, "expires_at": expires_at, "verified": False}
        return self._public(self.users[userid]), code

    def list_users(self):
        return [self._public(u) for u in self.users.values()]

    def get_user_by_email(self, email):
        user = self._by_email(email)
        return copy.deepcopy(user) if user else None

    def get_user_by_id(self, userid):
        user = self.users.get(userid)
        return copy.deepcopy(user) if user else None

    def set_last_logout(self, userid, now=None):
        now = now or _now()
        if userid in self.users:
            self.users[userid]["last_logout_at"] = now
        return now

    def update_basic_fields(self, userid, patch):
        if patch.is_empty():
            raise NoUpdateFieldsError("no fields to update")
        user = self.users.get(userid)
        if not user:
            return None
        for column, value in patch.items():
            user[column] = value
        user["updated_at"] = _now()
        return self._public(user)

    def change_password(self, userid, current_password, new_password):
        user = self.users.get(userid)
        if not user or not verify_password(current_password, user["passwordhash"]):
            return False
        user["passwordhash"] = self._hash(new_password)
        user["last_logout_at"] = _now()
        return True

    def is_email_verified(self, userid):
        row = self.verification.get(userid)
        return bool(row and row["verified"])

    def check_email_token(self, userid, code):
        row = self.verification.get(userid)
        return bool(code and row and row["code"] == code and row["expires_at"] > _now())

    def mark_email_verified(self, userid):
        if userid in self.verification:
            self.verification[userid]["verified"] = True

    def regenerate_email_token(self, userid):
        row = self.verification.get(userid)
        if row is None:
            return None
        row["code"], row["expires_at"] = self._fresh_code()
        row["verified"] = False
        return row["code"]

    def init_email_change(self, userid, new_email):
        if self._by_email(new_email):
            raise DuplicateEmailError(new_email)
        code, expires_at = self._fresh_code()
        self.email_changes[userid] = {
            "new_email": new_email,
            "code": code,
            "expires_at": expires_at,
            "verified": False,
        }
        return code

    def verify_email_change(self, userid, code):
        row = self.email_changes.get(userid)
        if not (code and row and not row["verified"] and row["code"] == code and row["expires_at"] > _now()):
            return None
        if self._by_email(row["new_email"]):
            raise DuplicateEmailError(row["new_email"])
        row["verified"] = True
        self.users[userid]["email"] = row["new_email"]
        return row["new_email"]

    def _require_user(self, email):
        user = self._by_email(email)
        if not user:
            raise UnknownEmailError(email)
        return user

    def init_password_reset(self, email):
        user = self._require_user(email)
        code, expires_at = self._fresh_code()
        self.resets[user["userid"]] = {"code": code, "expires_at": expires_at, "verified": False}
        return self._public(user), code

    def verify_password_reset_code(self, email, code):
        user = self._require_user(email)
        row = self.resets.get(user["userid"])
        if not (code and row and not row["verified"] and row["code"] == code and row["expires_at"] > _now()):
            return False
        row["verified"] = True
        return True

    def apply_password_reset(self, email, raw_password):
        user = self._require_user(email)
        row = self.resets.get(user["userid"])
        if not (row and row["verified"]):
            return False
        del self.resets[user["userid"]]
        user["passwordhash"] = self._hash(raw_password)
        user["last_logout_at"] = _now()
        return True

    def replace_availability(self, userid, slots):
        rows = [
            {"day_of_week": s["dayOfWeek"], "start_time": s["startTime"], "end_time": s["endTime"]}
            for s in slots
        ]
        if not rows:
            raise ValueError("Invalid time slots")
        self.availability[userid] = rows
        return len(rows)

    def get_availability(self, userid):
        return list(self.availability.get(userid, []))


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def send(self, message):
        self.sent.append(message)

    def last_code(self, to=None):
        for message in reversed(self.sent):
            if to is None or message.to == to:
                return message.subject.rsplit(": ", 1)[1]
        raise AssertionError(f"no email sent to {to}")


def make_settings(**overrides):
    values = {
        "app_env": "prod",
        "jwt_secret": "test-secret",
        "global_rate_limit": 1000,
        "auth_rate_limit": 1000,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def store():
    return MemoryAccountStore()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(settings, store, mailer):
    return create_app(settings, store=store, mailer=mailer)


@pytest.fixture
def client(app):
    # https so Secure cookies are sent back
    return TestClient(app, base_url="https://testserver")


@pytest.fixture
def make_client(store, mailer):
    """Client for an app built with overridden settings, sharing `store` and `mailer`."""

    def _make(raise_server_exceptions=True, **overrides):
        app = create_app(make_settings(**overrides), store=store, mailer=mailer)
        return TestClient(app, base_url="https://testserver", raise_server_exceptions=raise_server_exceptions)

    return _make


@pytest.fixture
def stale_cookie(app, store, client):
    """Put a token issued `seconds_ago` for `userid` into the client's cookie jar."""

    def _stale_cookie(userid, seconds_ago=10):
        issued = datetime.now(timezone.utc) - timedelta(seconds=seconds_ago)
        token = app.state.tokens.issue(store.get_user_by_id(userid), now=issued)
        client.cookies.clear()
        client.cookies.set("access_token", token)
        return token

    return _stale_cookie


@pytest.fixture
def signup(client, mailer):
    """Register a user; returns (userid, verification code)."""

    def _signup(name="Ronaldo", email="ronaldo@mail.com", password="Secret123"):
        resp = client.post("/signup", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        return resp.json()["userid"], mailer.last_code(email)

    return _signup


@pytest.fixture
def logged_in(client, signup):
    """Register, verify and log in; returns the user id with the auth cookie set on `client`."""

    def _logged_in(name="Ronaldo", email="ronaldo@mail.com", password="Secret123"):
        userid, code = signup(name, email, password)
        resp = client.post("/verifyEmail", json={"userid": userid, "verificationCode": code})
        assert resp.status_code == 200, resp.text
        resp = client.post("/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return userid

    return _logged_in
