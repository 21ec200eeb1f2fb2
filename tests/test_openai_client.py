import base64
import time
from types import SimpleNamespace

from artbot.services.openai_client import OpenAIClient


def fake_sdk(image=None, chat=None, edit=None):
    return SimpleNamespace(
        images=SimpleNamespace(generate=image, edit=edit),
        chat=SimpleNamespace(completions=SimpleNamespace(create=chat)),
    )


def make_client(timeout=5, **kw):
    return OpenAIClient("sk-test", timeout=timeout, client=fake_sdk(**kw))


async def test_generate_image_returns_first_url():
    calls = []

    def generate(**params):
        calls.append(params)
        return SimpleNamespace(data=[SimpleNamespace(url="https://img/1.png")])

    client = make_client(image=generate)

    assert await client.generate_image("sunset") == "https://img/1.png"
    assert calls == [{"model": "dall-e-3", "prompt": "sunset", "n": 1, "size": "1024x1024"}]


async def test_generate_image_failure_becomes_none():
    def generate(**params):
        raise RuntimeError("boom")

    assert await make_client(image=generate).generate_image("x") is None


async def test_generate_image_empty_response_becomes_none():
    client = make_client(image=lambda **p: SimpleNamespace(data=[]))

    assert await client.generate_image("x") is None


async def test_generate_image_timeout_becomes_none():
    def slow(**params):
        time.sleep(0.5)
        return SimpleNamespace(data=[SimpleNamespace(url="late")])

    assert await make_client(timeout=0.05, image=slow).generate_image("x") is None


async def test_edit_image_sends_bytes_and_decodes_result():
    calls = []

    def edit(**params):
        calls.append(params)
        return SimpleNamespace(data=[SimpleNamespace(b64_json=base64.b64encode(b"edited").decode())])

    client = make_client(edit=edit)

    assert await client.edit_image(b"jpeg", "add a hat") == b"edited"
    assert calls == [{
        "model": "gpt-image-1",
        "image": ("photo.jpg", b"jpeg", "image/jpeg"),
        "prompt": "add a hat",
        "n": 1,
        "size": "1024x1024",
    }]


async def test_edit_image_failure_or_empty_becomes_none():
    def broken(**params):
        raise RuntimeError("boom")

    assert await make_client(edit=broken).edit_image(b"jpeg", "x") is None
    assert await make_client(edit=lambda **p: SimpleNamespace(data=[])).edit_image(b"jpeg", "x") is None
    bad = SimpleNamespace(data=[SimpleNamespace(b64_json="not base64!")])
    assert await make_client(edit=lambda **p: bad).edit_image(b"jpeg", "x") is None


async def test_ask_returns_stripped_answer():
    def create(**params):
        assert params["messages"] == [{"role": "user", "content": "capital of France?"}]
        assert params["max_tokens"] == 4096
        message = SimpleNamespace(content="  Paris.\n")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    assert await make_client(chat=create).ask("capital of France?") == "Paris."


async def test_ask_failure_or_blank_becomes_none():
    def broken(**params):
        raise ConnectionError("down")

    def blank(**params):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="  "))])

    assert await make_client(chat=broken).ask("q") is None
    assert await make_client(chat=blank).ask("q") is None
