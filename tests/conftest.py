# tests/conftest.py
import os
import sys
import asyncio
import json
import math
from urllib.parse import urlencode

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
for name in ("ALGOLIA_APP_ID", "ALGOLIA_ADMIN_KEY", "CLOUDINARY_URL", "SMTP_HOST"):
    os.environ.pop(name, None)

sys.path.append(os.path.abspath("."))

from app.database import Base, get_db
from app.notifications import get_notification_channel
from app.search import get_search_index
from app.storage import get_image_uploader
from main import app


# DB (SQLite in-memory for tests)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


@pytest.fixture(scope="session", autouse=True)
def prepare_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


# One event loop for the WHOLE pytest session
@pytest.fixture(scope="session")
def session_loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


# Run the application lifespan once per session (same loop)
@pytest.fixture(scope="session", autouse=True)
def app_lifespan(session_loop):
    lifespan = app.router.lifespan_context(app)
    session_loop.run_until_complete(lifespan.__aenter__())
    yield
    session_loop.run_until_complete(lifespan.__aexit__(None, None, None))


def distance_meters(lat1, lng1, lat2, lng2):
    radius = 6371000
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * radius * math.asin(math.sqrt(a))


class FakeIndex:
    """In-memory geo index answering like the hosted one."""

    configured = True

    def __init__(self):
        self.documents = {}
        self.queries = []
        self.fail = False

    def upsert(self, object_id, document):
        if self.fail:
            raise RuntimeError("index unreachable")
        self.documents[object_id] = {**document, "objectID": object_id}

    def delete(self, object_id):
        if self.fail:
            raise RuntimeError("index unreachable")
        self.documents.pop(object_id, None)

    def query(self, filters, geo):
        self.queries.append((filters, geo))
        if self.fail:
            raise RuntimeError("index unreachable")
        field, _, value = filters.partition(":")
        hits = []
        for doc in self.documents.values():
            point = doc.get("_geoloc")
            if doc.get(field) != value or point is None:
                continue
            distance = distance_meters(geo.lat, geo.lng, point["lat"], point["lng"])
            if distance <= geo.radius_meters:
                hits.append((distance, dict(doc)))
        return [doc for _, doc in sorted(hits, key=lambda item: item[0])]


class FakeUploader:
    def __init__(self):
        self.uploads = []

    def upload(self, image_data):
        self.uploads.append(image_data)
        return f"https://img.example.com/pets/{len(self.uploads)}.png"


class FakeChannel:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to_address, subject, body):
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append({"to": to_address, "subject": subject, "body": body})
        return True


@pytest.fixture()
def search_index():
    return FakeIndex()


@pytest.fixture()
def uploader():
    return FakeUploader()


@pytest.fixture()
def outbox():
    return FakeChannel()


# Simple ASGI response/client
class SimpleResponse:
    def __init__(
        self, status_code: int, body: bytes, headers: list[tuple[bytes, bytes]]
    ):
        self.status_code = status_code
        self._body = body
        self.headers = {k.decode(): v.decode() for k, v in headers}

    def json(self):
        return json.loads(self._body.decode())


class SimpleClient:
    """
    Minimal ASGI client running requests on the shared session loop.
    """

    def __init__(self, app, loop):
        self.app = app
        self.loop = loop

    def request(
        self,
        method: str,
        path: str,
        json_body=None,
        headers=None,
        params=None,
    ):
        headers = dict(headers or {})
        body_bytes = b""

        if json_body is not None:
            body_bytes = json.dumps(json_body).encode()
            headers.setdefault("content-type", "application/json")

        path, _, query = path.partition("?")
        if params:
            query = urlencode(params, doseq=True)

        raw_headers = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
        scope = {
            "type": "http",
            "method": method.upper(),
            "path": path,
            "headers": raw_headers,
            "query_string": query.encode(),
            "client": ("testclient", 5000),
        }

        async def receive():
            nonlocal body_bytes
            chunk, body_bytes = body_bytes, b""
            return {"type": "http.request", "body": chunk, "more_body": False}

        response_body = bytearray()
        response_status = 500
        response_headers: list[tuple[bytes, bytes]] = []

        async def send(message):
            nonlocal response_status, response_headers
            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = message.get("headers", [])
            elif message["type"] == "http.response.body":
                response_body.extend(message.get("body", b""))

        asyncio.set_event_loop(self.loop)
        self.loop.run_until_complete(self.app(scope, receive, send))
        return SimpleResponse(response_status, bytes(response_body), response_headers)

    def get(self, path: str, headers=None, params=None):
        return self.request("GET", path, headers=headers, params=params)

    def post(self, path: str, json=None, headers=None):
        return self.request("POST", path, json_body=json, headers=headers)

    def put(self, path: str, json=None, headers=None):
        return self.request("PUT", path, json_body=json, headers=headers)


# Client fixture: override DB and collaborator dependencies per test
@pytest.fixture()
def client(db_session, session_loop, search_index, uploader, outbox):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_search_index] = lambda: search_index
    app.dependency_overrides[get_image_uploader] = lambda: uploader
    app.dependency_overrides[get_notification_channel] = lambda: outbox

    try:
        yield SimpleClient(app, loop=session_loop)
    finally:
        app.dependency_overrides.clear()
