"""Shared test fixtures for the Robokache test suite.

Tests run against a throwaway SQLite database and data directory created
per session. Each test starts from an empty ``document`` table and an empty
blob directory.

Tokens are signed with a locally generated RSA key; the identity verifier is
overridden to fetch its key set from a fake client instead of Google.
"""

import os
import tempfile

# Point the app at scratch storage before any app imports.
_SCRATCH = tempfile.mkdtemp(prefix="robokache-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_SCRATCH, 'robokache.db')}"
os.environ["DATA_DIR"] = _SCRATCH
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_FORMAT"] = "text"

import pytest
from sqlalchemy import text
from fastapi.testclient import TestClient

from robokache.database import SessionLocal, get_db, init_db
from robokache.main import app
from robokache.core.auth import get_identity_verifier
from robokache.core.config import settings
from robokache.core.id_codec import get_id_codec
from robokache.core.identity import IdentityVerifier
from robokache.core.key_set import KeySetFetcher
from robokache.models import Document, Visibility
from robokache.storage.blob_store import FilesystemBlobStore, get_blob_store
from tests.helpers import CERTS_URL, ME, YOU, FakeKeyClient, bearer, make_token

init_db()


@pytest.fixture(autouse=True)
def _clean_tables():
    """Empty the document table and blob directory before each test.

    Runs before the test (not after) so failures leave data behind for
    debugging.
    """
    db = SessionLocal()
    try:
        db.execute(text("DELETE FROM document"))
        db.commit()
    finally:
        db.close()
    root = get_blob_store().root
    for name in os.listdir(root):
        os.remove(os.path.join(root, name))
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def codec():
    return get_id_codec()


@pytest.fixture()
def blob_store(tmp_path) -> FilesystemBlobStore:
    return FilesystemBlobStore(str(tmp_path / "files"))


@pytest.fixture()
def key_client() -> FakeKeyClient:
    return FakeKeyClient()


@pytest.fixture()
def verifier(key_client) -> IdentityVerifier:
    """Verifier wired like production, but fed by the fake key client."""
    return IdentityVerifier(
        KeySetFetcher(key_client, CERTS_URL),
        audience=settings.google_client_id,
        issuers=settings.get_trusted_issuers(),
    )


@pytest.fixture()
def client(db, verifier):
    """FastAPI TestClient using the test session and the local signing key."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def me_headers() -> dict:
    return bearer(make_token(ME))


@pytest.fixture()
def you_headers() -> dict:
    return bearer(make_token(YOU))


# (name, parent name, owner, visibility)
SAMPLE_DOCUMENTS = [
    ("me_private", None, ME, Visibility.PRIVATE),
    ("me_public", None, ME, Visibility.PUBLIC),
    ("me_shareable_child", "me_public", ME, Visibility.SHAREABLE),
    ("me_public_child", "me_public", ME, Visibility.PUBLIC),
    ("you_public", None, YOU, Visibility.PUBLIC),
    ("you_shareable", None, YOU, Visibility.SHAREABLE),
    ("you_private", None, YOU, Visibility.PRIVATE),
    ("you_shareable_child", "you_public", YOU, Visibility.SHAREABLE),
    ("you_public_child", "you_public", YOU, Visibility.PUBLIC),
]


@pytest.fixture()
def sample_documents(db, codec) -> dict:
    """Insert a small two-owner hierarchy. Returns name -> external ID.

    me@ owns four documents (one private root, one public root with two
    children); you@ owns five (public, shareable and private roots, and
    two children under the public root). Every document carries a payload
    equal to its name.
    """
    store = get_blob_store()
    internal = {}
    for name, parent_name, owner, visibility in SAMPLE_DOCUMENTS:
        doc = Document(
            owner=owner,
            parent=internal[parent_name] if parent_name else None,
            visibility=int(visibility),
            doc_metadata={"name": name},
        )
        db.add(doc)
        db.flush()
        internal[name] = doc.id
        store.write(doc.id, name.encode())
    db.commit()
    return {name: codec.encode(doc_id) for name, doc_id in internal.items()}

