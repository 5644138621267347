import itertools
import struct
import zlib
from datetime import datetime, timedelta, timezone
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.core.config import Settings
from app.core.errors import UpstreamFailure
from app.core.security import create_access_token
from app.main import create_app
from app.models.listing import Listing, STATUS_ACTIVE
from app.models.user import ROLE_ADMIN, ROLE_USER, User

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeImageStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploaded = []

    def upload(self, data, blob_name, content_type=None):
        if self.fail:
            raise UpstreamFailure("image_upload_failed")
        self.uploaded.append(blob_name)
        return f"https://blob.test/{blob_name}"


class FakeGeocoder:
    POINT = (6.9271, 79.8612)

    def __init__(self):
        self.calls = []

    def lookup(self, region, city):
        self.calls.append((region, city))
        return self.POINT


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite://",
        JWT_ACCESS_SECRET="test-access-secret",
        JWT_REFRESH_SECRET="test-refresh-secret",
        AZURE_STORAGE_CONNECTION_STRING="",
        GEOCODER_ENABLED=False,
        REFRESH_COOKIE_SECURE=False,
        BOOTSTRAP_ADMIN_EMAILS=["boss@example.com"],
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


def png_bytes(color="red") -> bytes:
    buf = BytesIO()
    Image.new("RGB", (4, 4), color).save(buf, "PNG")
    return buf.getvalue()


def oversized_png_bytes(width=200000, height=200000) -> bytes:
    """A valid PNG whose header claims far more pixels than Pillow will open."""
    data = bytearray(png_bytes())
    # IHDR payload follows the 8-byte signature, chunk length and type
    ihdr = struct.pack(">II", width, height) + bytes(data[24:29])
    data[16:29] = ihdr
    data[29:33] = struct.pack(">I", zlib.crc32(b"IHDR" + ihdr) & 0xFFFFFFFF)
    return bytes(data)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        app.state.image_store = FakeImageStore()
        app.state.geocoder = FakeGeocoder()
        yield c


@pytest.fixture
def db(client):
    session = client.app.state.db.session()
    yield session
    session.close()


_seq = itertools.count(1)


@pytest.fixture
def make_user(db):
    def _make(name=None, email=None, role=ROLE_USER):
        n = next(_seq)
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@example.com",
            password_hash=None,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user(name="Seller")


@pytest.fixture
def other_user(make_user):
    return make_user(name="Buyer")


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", role=ROLE_ADMIN)


@pytest.fixture
def headers_for(settings):
    def _headers(u: User, s: Settings = None):
        return {"Authorization": f"Bearer {create_access_token(u, s or settings)}"}

    return _headers


@pytest.fixture
def make_listing(db):
    minutes = itertools.count()

    def _make(seller, **fields):
        values = dict(
            vehicle_type="car",
            model="Corolla",
            condition="used",
            year=2020,
            price=20000.0,
            mileage=None,
            region="Western",
            city="Colombo",
            latitude=6.9271,
            longitude=79.8612,
            status=STATUS_ACTIVE,
            view_count=0,
        )
        values.update(fields)
        if "created_at" not in values:
            values["created_at"] = BASE_TIME + timedelta(minutes=next(minutes))
        values.setdefault("updated_at", values["created_at"])
        listing = Listing(seller_id=seller.user_id, **values)
        db.add(listing)
        db.commit()
        db.refresh(listing)
        return listing

    return _make
