"""Shared test fixtures and configuration."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.events import ImageElement, InboundMessage, QuoteElement, TextElement
from app.models.quote import Base


@pytest.fixture(autouse=True)
def mock_env(monkeypatch):
    """Set minimum required environment variables for all tests."""
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "test-bot-token")
    monkeypatch.delenv("TELEGRAM_WEBHOOK_SECRET", raising=False)
    monkeypatch.delenv("ALLOWED_SCOPES", raising=False)


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across sessions."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    from app.services.quote_store import QuoteStore
    return QuoteStore(session_factory)


@pytest.fixture
def storage(tmp_path):
    from app.services.storage_service import LocalQuoteStorage
    return LocalQuoteStorage(tmp_path / "quotes", min_file_size=100)


@pytest.fixture
def storage_dir(storage):
    storage.ensure_dir()
    return storage


class Replies:
    """Collects everything a handler sends back."""

    def __init__(self):
        self.sent = []

    async def __call__(self, content):
        self.sent.append(content)

    @property
    def texts(self):
        return [str(item) for item in self.sent]


@pytest.fixture
def replies():
    return Replies()


class ScheduledJobs:
    """Stand-in for schedule_once that keeps jobs for the test to run."""

    def __init__(self):
        self.jobs = []

    def __call__(self, func, delay_seconds, *args):
        self.jobs.append((func, delay_seconds, args))

    async def run_all(self):
        jobs, self.jobs = self.jobs, []
        for func, _, args in jobs:
            await func(*args)


@pytest.fixture
def scheduled():
    return ScheduledJobs()


def make_message(text="", scope="42", user="u1", message_id="100", image_src=None, quote=None, private=False):
    elements = []
    if image_src is not None:
        elements.append(ImageElement(file_id=f"file-{message_id}", src=image_src))
    if text:
        elements.append(TextElement(text))
    return InboundMessage(
        message_id=message_id,
        chat_id=user if private else scope,
        user_id=user,
        is_private=private,
        elements=elements,
        quote=QuoteElement(**quote) if quote else None,
    )


@pytest.fixture
def message():
    """Factory for InboundMessage objects."""
    return make_message
