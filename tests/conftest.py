"""
Pytest configuration and fixtures

The SQLAlchemy session factory is replaced with a scripted fake: tests
register canned rows for SQL fragments and inspect what was executed.
S3 and SMTP are replaced the same way, so no service needs to be running.
"""
import os

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

# Set test environment
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("SUPERVISOR_ID", "supervisor@example.com")
os.environ.setdefault("S3_BUCKET_NAME", "test-bucket")


class FakeResult:
    """Just enough of sqlalchemy's CursorResult for the app's call sites."""

    def __init__(self, rows=None, rowcount=None):
        self._rows = [dict(row) for row in rows or []]
        self.rowcount = len(self._rows) if rowcount is None else rowcount

    def keys(self):
        return list(self._rows[0].keys()) if self._rows else []

    def fetchall(self):
        return [tuple(row.values()) for row in self._rows]

    def fetchone(self):
        return tuple(self._rows[0].values()) if self._rows else None

    def scalar(self):
        row = self.fetchone()
        return row[0] if row else None


class FakeDatabase:
    """
    Scripted database.

    `on(fragment, rows)` answers every statement containing `fragment`
    (whitespace-normalized). `rows` may be a callable taking the bound
    parameters. Unmatched statements return no rows and rowcount 1.
    """

    def __init__(self):
        self.responses = []
        self.executed = []
        self.commits = 0
        self.rollbacks = 0

    def on(self, fragment, rows=None, rowcount=None):
        self.responses.append((" ".join(fragment.split()), rows, rowcount))
        return self

    def execute(self, statement, params=None):
        sql = " ".join(str(statement).split())
        params = dict(params or {})
        self.executed.append((sql, params))
        for fragment, rows, rowcount in self.responses:
            if fragment in sql:
                if callable(rows):
                    rows = rows(params)
                return FakeResult(rows, rowcount)
        return FakeResult([], 1)

    def statements(self, fragment):
        """Executed (sql, params) pairs containing `fragment`."""
        fragment = " ".join(fragment.split())
        return [(sql, params) for sql, params in self.executed if fragment in sql]


class FakeSession:
    def __init__(self, database):
        self.database = database

    def execute(self, statement, params=None):
        return self.database.execute(statement, params)

    def commit(self):
        self.database.commits += 1

    def rollback(self):
        self.database.rollbacks += 1

    def close(self):
        pass


class FakeS3Client:
    """In-memory stand-in for a boto3 S3 client."""

    def __init__(self):
        self.objects = {}

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentLength": len(self.objects[Key])}

    def put_object(self, Bucket, Key, Body, **kwargs):
        self.objects[Key] = Body

    def generate_presigned_url(self, operation, Params):
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?X-Amz-Signature=abc"

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def head_bucket(self, Bucket):
        return {}


class FakeMailer:
    def __init__(self):
        self.sent = []

    def send_mail(self, to_email, title, content):
        self.sent.append({"to": to_email, "title": title, "content": content})


@pytest.fixture
def db(monkeypatch):
    """Scripted database behind get_db_session()"""
    from app.db import mysql

    database = FakeDatabase()
    monkeypatch.setattr(mysql, "SessionLocal", lambda: FakeSession(database))
    return database


@pytest.fixture
def s3(monkeypatch):
    """In-memory S3 behind get_storage()"""
    from app.services import storage_service

    client = FakeS3Client()
    monkeypatch.setattr(storage_service, "_storage", storage_service.S3Storage(client=client, bucket="test-bucket"))
    return client


@pytest.fixture
def mailer(monkeypatch):
    """Recording mailer behind get_mail_service()"""
    from app.services import mail_service

    fake = FakeMailer()
    monkeypatch.setattr(mail_service, "_mail_service", fake)
    return fake


@pytest.fixture
def client(db, s3, mailer):
    """Test client with every external service faked"""
    from app.main import app

    return TestClient(app)


def auth_header(email):
    """Authorization header carrying a fresh access token"""
    from app.core.auth import create_access_token

    return {"Authorization": f"Bearer {create_access_token(email)}"}


def as_admin(db, *emails):
    """Make is_admin() answer true for the given users"""
    db.on(
        "SELECT is_admin FROM user WHERE id = :id",
        lambda params: [{"is_admin": 1 if params["id"] in emails else 0}],
    )
