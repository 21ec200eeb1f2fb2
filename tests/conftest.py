from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from artbot.config import Settings
from artbot.db.connection import FakeDatabase
from artbot.db.repository import Repository
from artbot.services.audit import AuditLogger
from artbot.services.batch import BatchRunner
from artbot.services.limits import LastImageTracker, RateLimiter

OWNER_ID = 1000
USER_ID = 42


class FakeLLM:
    """Returns queued results in order; None in the queue means a failed call."""

    def __init__(self, images=None, answer="Paris.", edited=b"png-bytes"):
        self.images = list(images) if images is not None else []
        self.answer = answer
        self.edited = edited
        self.prompts = []
        self.questions = []
        self.edits = []

    async def generate_image(self, prompt):
        self.prompts.append(prompt)
        if self.images:
            return self.images.pop(0)
        return f"https://img.example/{len(self.prompts)}.png"

    async def edit_image(self, image, prompt):
        self.edits.append((image, prompt))
        return self.edited

    async def ask(self, question):
        self.questions.append(question)
        return self.answer


def make_user(user_id=USER_ID, username="alice", first_name="Alice", last_name="Smith"):
    full_name = f"{first_name} {last_name or ''}".strip()
    return SimpleNamespace(
        id=user_id, username=username, first_name=first_name, last_name=last_name, full_name=full_name,
    )


def make_message(text, user=None, chat_type="private", title=None, reply_to_message=None, bot=None):
    user = user or make_user()
    return SimpleNamespace(
        text=text,
        from_user=user,
        chat=SimpleNamespace(id=user.id, type=chat_type, title=title),
        reply_to_message=reply_to_message,
        bot=bot or AsyncMock(),
        answer=AsyncMock(),
        answer_photo=AsyncMock(),
    )


def answers(message):
    return [c.args[0] for c in message.answer.await_args_list]


def photos(message):
    return [c.args[0] for c in message.answer_photo.await_args_list]


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def repo(db):
    return Repository(db)


@pytest.fixture
def settings():
    return Settings(
        bot_token="123:TEST",
        openai_api_key="sk-test",
        owner_ids=frozenset({OWNER_ID}),
        log_channel_id="",
        developer_handle="@dev",
        ai_cooldown_seconds=5,
        proai_batch_size=3,
        proai_delay_seconds=0,
        use_fake_db=True,
    )


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def limiter(settings):
    return RateLimiter(cooldown_seconds=settings.ai_cooldown_seconds)


@pytest.fixture
def last_images():
    return LastImageTracker()


@pytest.fixture
def batches(settings):
    return BatchRunner(size=settings.proai_batch_size, delay=settings.proai_delay_seconds)


@pytest.fixture
def audit():
    return AuditLogger(AsyncMock(), channel_id="-100500")
