import base64
import json
import threading
from types import SimpleNamespace

import numpy as np
import pytest

from poplingo import api
from poplingo.audio import PcmAudio
from poplingo.models import DictionaryEntry, Language

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"

DEFINITION_PAYLOAD = {
    "definition": "cat",
    "examples": [
        {"text": "我有一只猫。", "translation": "I have a cat."},
        {"text": "猫在睡觉。", "translation": "The cat is sleeping."},
    ],
    "usageNote": "Say it twice (猫猫) and it's instantly cuter.",
}


def chat_response(content=None, audio=None):
    message = SimpleNamespace(content=content, audio=audio)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeEndpoint:
    """Records every call's kwargs and delegates the response to ``handler``."""

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.handler(kwargs)

    generate = create


def make_client(chat_handler=None, image_handler=None):
    chat = FakeEndpoint(chat_handler or (lambda kw: chat_response(json.dumps(DEFINITION_PAYLOAD))))
    images = FakeEndpoint(image_handler or (
        lambda kw: SimpleNamespace(data=[SimpleNamespace(b64_json=base64.b64encode(PNG_BYTES).decode())])
    ))
    return SimpleNamespace(chat=SimpleNamespace(completions=chat), images=images)


@pytest.fixture
def fake_client(monkeypatch):
    client = make_client()
    monkeypatch.setattr(api, "client", client)
    return client


@pytest.fixture
def no_client(monkeypatch):
    monkeypatch.setattr(api, "client", None)


# ---------------------------------------------------------------------------
# lookup_term
# ---------------------------------------------------------------------------

def test_lookup_builds_entry(fake_client):
    entry = api.lookup_term("猫", Language.ENGLISH, Language.MANDARIN)

    assert isinstance(entry, DictionaryEntry)
    assert entry.term == "猫"
    assert entry.definition == "cat"
    assert [e.text for e in entry.examples] == ["我有一只猫。", "猫在睡觉。"]
    assert entry.examples[1].translation == "The cat is sleeping."
    assert entry.usage_note.startswith("Say it twice")
    assert entry.image_bytes == PNG_BYTES
    assert entry.image_mime == "image/png"
    assert entry.id
    assert entry.timestamp > 0


def test_lookup_prompts_mention_term_and_languages(fake_client):
    api.lookup_term("  猫 ", Language.ENGLISH, Language.MANDARIN)

    chat_call = fake_client.chat.completions.calls[0]
    assert chat_call["response_format"] == {"type": "json_object"}
    user_prompt = chat_call["messages"][-1]["content"]
    assert '"猫"' in user_prompt
    assert "from Mandarin Chinese to English" in user_prompt
    assert "2 example sentences" in user_prompt

    image_call = fake_client.images.calls[0]
    assert '"猫"' in image_call["prompt"]
    assert "Do not include text" in image_call["prompt"]
    assert image_call["response_format"] == "b64_json"


def test_lookup_runs_text_and_image_requests_concurrently(monkeypatch):
    # Each request waits for the other; a sequential implementation would time out
    barrier = threading.Barrier(2, timeout=5)

    def chat(kw):
        barrier.wait()
        return chat_response(json.dumps(DEFINITION_PAYLOAD))

    def image(kw):
        barrier.wait()
        return SimpleNamespace(data=[SimpleNamespace(b64_json=base64.b64encode(PNG_BYTES).decode())])

    monkeypatch.setattr(api, "client", make_client(chat, image))

    entry = api.lookup_term("猫", Language.ENGLISH, Language.MANDARIN)

    assert entry.image_bytes == PNG_BYTES


def test_lookup_without_inline_image_has_no_image(monkeypatch):
    client = make_client(image_handler=lambda kw: SimpleNamespace(data=[SimpleNamespace(b64_json=None)]))
    monkeypatch.setattr(api, "client", client)

    entry = api.lookup_term("猫", Language.ENGLISH, Language.MANDARIN)

    assert entry.has_image is False
    assert entry.image_mime is None
    assert entry.definition == "cat"


def test_lookup_fails_when_image_request_fails(monkeypatch):
    def boom(kw):
        raise RuntimeError("image service down")

    monkeypatch.setattr(api, "client", make_client(image_handler=boom))

    with pytest.raises(RuntimeError, match="image service down"):
        api.lookup_term("猫", Language.ENGLISH, Language.MANDARIN)


def test_lookup_fails_when_text_request_fails(monkeypatch):
    def boom(kw):
        raise RuntimeError("chat service down")

    monkeypatch.setattr(api, "client", make_client(chat_handler=boom))

    with pytest.raises(RuntimeError, match="chat service down"):
        api.lookup_term("猫", Language.ENGLISH, Language.MANDARIN)


def test_lookup_fails_on_malformed_json(monkeypatch):
    monkeypatch.setattr(api, "client", make_client(chat_handler=lambda kw: chat_response("not json")))

    with pytest.raises(ValueError):
        api.lookup_term("猫", Language.ENGLISH, Language.MANDARIN)


def test_lookup_tolerates_partial_json(monkeypatch):
    payload = {"definition": "cat", "examples": ["oops", {"text": "猫"}]}
    monkeypatch.setattr(api, "client", make_client(chat_handler=lambda kw: chat_response(json.dumps(payload))))

    entry = api.lookup_term("猫", Language.ENGLISH, Language.MANDARIN)

    assert entry.usage_note == ""
    assert len(entry.examples) == 1
    assert entry.examples[0].translation == ""


def test_lookup_rejects_blank_term(fake_client):
    with pytest.raises(ValueError):
        api.lookup_term("   ", Language.ENGLISH, Language.SPANISH)

    assert fake_client.chat.completions.calls == []
    assert fake_client.images.calls == []


def test_lookup_without_client(no_client):
    assert api.is_api_available() is False

    with pytest.raises(api.ServiceUnavailableError):
        api.lookup_term("hola", Language.ENGLISH, Language.SPANISH)


def test_lookup_async_reports_result_and_error(fake_client, monkeypatch):
    done = threading.Event()
    results = []

    def callback(entry, error):
        results.append((entry, error))
        done.set()

    api.lookup_term_async("猫", Language.ENGLISH, Language.MANDARIN, callback)
    assert done.wait(5)
    entry, error = results[0]
    assert error is None and entry.term == "猫"

    done.clear()
    monkeypatch.setattr(api, "client", None)
    api.lookup_term_async("猫", Language.ENGLISH, Language.MANDARIN, callback)
    assert done.wait(5)
    entry, error = results[1]
    assert entry is None
    assert isinstance(error, api.ServiceUnavailableError)


# ---------------------------------------------------------------------------
# generate_audio
# ---------------------------------------------------------------------------

def audio_response(raw: bytes):
    encoded = base64.b64encode(raw).decode()
    return chat_response(content=None, audio=SimpleNamespace(data=encoded, transcript="hola"))


def test_generate_audio_decodes_pcm(monkeypatch):
    client = make_client(chat_handler=lambda kw: audio_response(bytes([0x00, 0x40, 0x00, 0xC0])))
    monkeypatch.setattr(api, "client", client)

    audio = api.generate_audio("hola")

    assert isinstance(audio, PcmAudio)
    assert audio.sample_rate == 24000
    assert audio.channels == 1
    assert np.allclose(audio.channel_data(0), [0.5, -0.5])

    call = client.chat.completions.calls[0]
    assert call["modalities"] == ["text", "audio"]
    assert call["audio"] == {"voice": api.DEFAULT_TTS_VOICE, "format": "pcm16"}
    assert call["messages"][-1] == {"role": "user", "content": "hola"}


def test_generate_audio_unknown_voice_falls_back(monkeypatch):
    client = make_client(chat_handler=lambda kw: audio_response(b"\x00\x00"))
    monkeypatch.setattr(api, "client", client)

    api.generate_audio("hola", voice="Puck")
    api.generate_audio("hola", voice="echo")

    voices = [call["audio"]["voice"] for call in client.chat.completions.calls]
    assert voices == [api.DEFAULT_TTS_VOICE, "echo"]


def test_generate_audio_returns_none_without_audio(monkeypatch):
    monkeypatch.setattr(api, "client", make_client(chat_handler=lambda kw: chat_response("sorry")))

    assert api.generate_audio("hola") is None


def test_generate_audio_returns_none_on_error(monkeypatch):
    def boom(kw):
        raise RuntimeError("tts down")

    monkeypatch.setattr(api, "client", make_client(chat_handler=boom))

    assert api.generate_audio("hola") is None


def test_generate_audio_returns_none_on_bad_payload(monkeypatch):
    bad = chat_response(audio=SimpleNamespace(data="%%%not-base64%%%"))
    monkeypatch.setattr(api, "client", make_client(chat_handler=lambda kw: bad))

    assert api.generate_audio("hola") is None


def test_generate_audio_skips_blank_text(fake_client):
    assert api.generate_audio("   ") is None
    assert fake_client.chat.completions.calls == []


def test_generate_audio_without_client(no_client):
    assert api.generate_audio("hola") is None


# ---------------------------------------------------------------------------
# generate_story
# ---------------------------------------------------------------------------

def test_story_with_no_terms_short_circuits(no_client):
    assert api.generate_story([], Language.ENGLISH, Language.SPANISH) == api.EMPTY_NOTEBOOK_STORY


def test_story_prompt_uses_all_terms(monkeypatch):
    client = make_client(chat_handler=lambda kw: chat_response("  Había una vez un *gato*...\n\nSummary  "))
    monkeypatch.setattr(api, "client", client)

    story = api.generate_story(["gato", "perro"], Language.ENGLISH, Language.SPANISH)

    assert story == "Había una vez un *gato*...\n\nSummary"
    prompt = client.chat.completions.calls[0]["messages"][-1]["content"]
    assert "gato, perro" in prompt
    assert "story in Spanish" in prompt
    assert "summary in English" in prompt
    assert "response_format" not in client.chat.completions.calls[0]


def test_story_empty_response_falls_back(monkeypatch):
    monkeypatch.setattr(api, "client", make_client(chat_handler=lambda kw: chat_response(None)))

    assert api.generate_story(["gato"], Language.ENGLISH, Language.SPANISH) == api.STORY_FALLBACK


def test_story_errors_propagate(monkeypatch):
    def boom(kw):
        raise RuntimeError("quota")

    monkeypatch.setattr(api, "client", make_client(chat_handler=boom))

    with pytest.raises(RuntimeError):
        api.generate_story(["gato"], Language.ENGLISH, Language.SPANISH)


def test_story_async_callback(monkeypatch):
    monkeypatch.setattr(api, "client", make_client(chat_handler=lambda kw: chat_response("*gato*")))
    done = threading.Event()
    results = []

    def callback(story, error):
        results.append((story, error))
        done.set()

    api.generate_story_async(["gato"], Language.ENGLISH, Language.SPANISH, callback)

    assert done.wait(5)
    assert results == [("*gato*", None)]


# ---------------------------------------------------------------------------
# highlight_keywords
# ---------------------------------------------------------------------------

def test_highlight_keywords_splits_runs():
    runs = api.highlight_keywords("El *gato* y el *perro*.")

    assert runs == [
        ("El ", False),
        ("gato", True),
        (" y el ", False),
        ("perro", True),
        (".", False),
    ]


def test_highlight_keywords_leaves_stray_asterisks():
    assert api.highlight_keywords("5 * 3 = 15") == [("5 * 3 = 15", False)]
    assert api.highlight_keywords("") == []
