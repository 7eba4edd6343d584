"""
OpenAI-backed services for PopLingo.

This module handles:
- Term lookup: definition, examples and usage note (JSON chat completion)
  fetched in parallel with an illustration (image generation)
- Pronunciation audio (PCM16 speech from an audio-capable chat model)
- Story generation from the notebook's saved terms

API key is expected in a .env file at the project root:

    OPENAI_API_KEY=sk-...

Model names can be overridden with POPLINGO_CHAT_MODEL, POPLINGO_IMAGE_MODEL,
POPLINGO_AUDIO_MODEL and POPLINGO_TTS_VOICE.
"""

import base64
import json
import os
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from dotenv import load_dotenv
from openai import OpenAI

from .audio import CHANNELS, SAMPLE_RATE, PcmAudio, decode_base64_audio
from .logger import logger, Timer
from .models import DictionaryEntry, Language
from .schemas import ENTRY_RESPONSE_SCHEMA, STORY_FORMAT


class ServiceUnavailableError(RuntimeError):
    """Raised when a network feature is used without a configured client."""


# ---------------------------------------------------------------------------
# Environment & OpenAI client setup
# ---------------------------------------------------------------------------

logger.separator("PopLingo - API Module Initialization")

logger.env("Loading environment variables from .env file...")
if load_dotenv():
    logger.env_success("dotenv file loaded successfully")
else:
    logger.warning("No .env file found or file is empty")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

if OPENAI_API_KEY:
    masked_key = f"{OPENAI_API_KEY[:8]}...{OPENAI_API_KEY[-4:]}" if len(OPENAI_API_KEY) > 12 else "***"
    logger.env_success(f"OPENAI_API_KEY found: {masked_key}")
    client: Optional[OpenAI] = OpenAI(api_key=OPENAI_API_KEY)
    logger.env_success("OpenAI client initialized successfully")
else:
    logger.env_error("OPENAI_API_KEY not found in environment!")
    logger.warning("Lookups, audio and stories are disabled until a key is configured")
    client = None

DEFAULT_CHAT_MODEL = os.getenv("POPLINGO_CHAT_MODEL", "gpt-4o-mini")
DEFAULT_IMAGE_MODEL = os.getenv("POPLINGO_IMAGE_MODEL", "dall-e-3")
# Chat model with audio output; returns base64 PCM16 at 24 kHz mono
DEFAULT_AUDIO_MODEL = os.getenv("POPLINGO_AUDIO_MODEL", "gpt-4o-mini-audio-preview")

TTS_VOICES = ("alloy", "ash", "ballad", "coral", "echo", "fable", "nova", "onyx", "sage", "shimmer", "verse")
DEFAULT_TTS_VOICE = os.getenv("POPLINGO_TTS_VOICE", "alloy")
if DEFAULT_TTS_VOICE not in TTS_VOICES:
    logger.warning(f"Unknown POPLINGO_TTS_VOICE '{DEFAULT_TTS_VOICE}', using 'alloy'")
    DEFAULT_TTS_VOICE = "alloy"

IMAGE_MIME = "image/png"
EMPTY_NOTEBOOK_STORY = "Add some words to your notebook first!"
STORY_FALLBACK = "Could not generate story."

logger.env(f"Chat model: {DEFAULT_CHAT_MODEL}")
logger.env(f"Image model: {DEFAULT_IMAGE_MODEL}")
logger.env(f"Audio model: {DEFAULT_AUDIO_MODEL} (voice: {DEFAULT_TTS_VOICE})")
logger.separator("API Module Ready")


def is_api_available() -> bool:
    """Check if the OpenAI API client is properly configured."""
    return client is not None


def _require_client() -> OpenAI:
    if client is None:
        raise ServiceUnavailableError("OPENAI_API_KEY is not configured")
    return client


# ---------------------------------------------------------------------------
# Term lookup
# ---------------------------------------------------------------------------

def _definition_messages(term: str, native_lang: Language, target_lang: Language) -> List[Dict[str, str]]:
    native, target = native_lang.value, target_lang.value
    return [
        {
            "role": "system",
            "content": (
                "You are a friendly bilingual dictionary for language learners.\n"
                + ENTRY_RESPONSE_SCHEMA
            ),
        },
        {
            "role": "user",
            "content": (
                f'Translate and define the term "{term}" from {target} to {native}.\n'
                f"Provide a natural language definition in {native}.\n"
                f"Provide 2 example sentences in {target} with {native} translations.\n"
                f'Provide a "usageNote" in {native} that explains cultural nuance, tone, or synonyms.\n'
                "Make the usage note fun, lively, and casual (like a friend talking). "
                "Be concise. No greetings."
            ),
        },
    ]


def illustration_prompt(term: str) -> str:
    return (
        "A simple, bright, fun, vector-art style illustration representing the concept of: "
        f'"{term}". Do not include text in the image. Colorful, flat design.'
    )


def _request_definition(term: str, native_lang: Language, target_lang: Language) -> Dict[str, Any]:
    api = _require_client()
    logger.api_call("chat.completions.create", model=DEFAULT_CHAT_MODEL)
    with Timer() as timer:
        completion = api.chat.completions.create(
            model=DEFAULT_CHAT_MODEL,
            response_format={"type": "json_object"},
            messages=_definition_messages(term, native_lang, target_lang),
            temperature=0.7,
        )
    logger.api_response("chat.completions.create", duration_ms=timer.duration_ms)

    raw = completion.choices[0].message.content or "{}"
    data = json.loads(raw)
    if not isinstance(data, dict):
        logger.warning(f"Definition response was {type(data).__name__}, expected an object")
        return {}
    return data


def _request_illustration(term: str) -> Optional[bytes]:
    api = _require_client()
    prompt = illustration_prompt(term)
    logger.img_start(prompt)
    logger.api_call("images.generate", model=DEFAULT_IMAGE_MODEL)
    with Timer() as timer:
        result = api.images.generate(
            model=DEFAULT_IMAGE_MODEL,
            prompt=prompt,
            size="1024x1024",
            quality="standard",
            response_format="b64_json",
        )
    logger.api_response("images.generate", duration_ms=timer.duration_ms)

    # First inline payload wins
    for image_data in result.data or []:
        b64 = getattr(image_data, "b64_json", None)
        if b64:
            image_bytes = base64.b64decode(b64)
            logger.img_complete(len(image_bytes), duration_ms=timer.duration_ms)
            return image_bytes

    logger.img_error("Response missing b64_json data")
    return None


def lookup_term(term: str, native_lang: Language, target_lang: Language) -> DictionaryEntry:
    """
    Look up ``term`` (written in ``target_lang``) for a ``native_lang`` speaker.

    The definition and the illustration are requested concurrently and both
    are awaited; if either request fails the whole lookup raises.
    """
    term = (term or "").strip()
    if not term:
        raise ValueError("Cannot look up an empty term")
    _require_client()

    logger.api(f"lookup_term() '{term}' ({target_lang.value} → {native_lang.value})")
    with Timer() as timer:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="lookup") as executor:
            text_future = executor.submit(_request_definition, term, native_lang, target_lang)
            image_future = executor.submit(_request_illustration, term)
            try:
                data = text_future.result()
                image_bytes = image_future.result()
            except Exception as e:
                logger.api_error(f"Lookup failed for '{term}': {e}")
                raise

    entry = DictionaryEntry.from_response(
        term,
        data,
        image_bytes=image_bytes,
        image_mime=IMAGE_MIME if image_bytes else None,
    )
    logger.success(
        f"Lookup complete: '{term}' - {len(entry.examples)} examples, "
        f"image={'yes' if entry.has_image else 'no'} ({timer.duration_ms:.0f}ms)"
    )
    return entry


def lookup_term_async(
    term: str,
    native_lang: Language,
    target_lang: Language,
    callback: Callable[[Optional[DictionaryEntry], Optional[Exception]], None],
) -> None:
    """
    Run lookup_term in a background thread.
    Calls callback(entry, None) on success or callback(None, error) on failure.
    """
    logger.task_start("async_lookup")

    def _lookup():
        start_time = time.perf_counter()
        try:
            entry = lookup_term(term, native_lang, target_lang)
        except Exception as e:
            logger.task_error("async_lookup", str(e))
            callback(None, e)
            return
        logger.task_complete("async_lookup", duration_ms=(time.perf_counter() - start_time) * 1000)
        callback(entry, None)

    thread = threading.Thread(target=_lookup, daemon=True)
    thread.start()


# ---------------------------------------------------------------------------
# Pronunciation audio
# ---------------------------------------------------------------------------

def generate_audio(text: str, voice: Optional[str] = None) -> Optional[PcmAudio]:
    """
    Synthesize ``text`` and return the decoded samples.

    Returns None when the client is not configured, the text is blank, the
    response carries no audio, or the request fails.
    """
    if client is None:
        logger.warning("OpenAI client not available, skipping audio generation")
        return None

    if not text or not text.strip():
        logger.warning("Empty text provided for audio")
        return None

    selected_voice = voice or DEFAULT_TTS_VOICE
    if selected_voice not in TTS_VOICES:
        logger.warning(f"Unknown voice '{selected_voice}', using '{DEFAULT_TTS_VOICE}'")
        selected_voice = DEFAULT_TTS_VOICE

    logger.aud(f"generate_audio() - {len(text)} chars, voice={selected_voice}")

    try:
        logger.api_call("chat.completions.create [audio]", model=DEFAULT_AUDIO_MODEL)
        with Timer() as timer:
            completion = client.chat.completions.create(
                model=DEFAULT_AUDIO_MODEL,
                modalities=["text", "audio"],
                audio={"voice": selected_voice, "format": "pcm16"},
                messages=[
                    {
                        "role": "system",
                        "content": (
                            "You are a pronunciation voice for a language learning app. "
                            "Read the user's text aloud exactly as written, clearly and at a natural pace. "
                            "Do not translate, explain, or add anything."
                        ),
                    },
                    {"role": "user", "content": text},
                ],
            )
        logger.api_response("chat.completions.create [audio]", duration_ms=timer.duration_ms)

        message_audio = completion.choices[0].message.audio
        encoded = getattr(message_audio, "data", None) if message_audio else None
        if not encoded:
            logger.aud_error("Response carried no audio data")
            return None

        return decode_base64_audio(encoded, sample_rate=SAMPLE_RATE, channels=CHANNELS)

    except Exception as e:
        logger.aud_error(f"Audio generation failed: {e}", exc_info=True)
        return None


def generate_audio_async(
    text: str,
    callback: Callable[[Optional[PcmAudio]], None],
    voice: Optional[str] = None,
) -> None:
    """
    Generate audio in a background thread.
    Calls callback with the decoded audio when done, or None on error.
    """
    logger.task_start("async_audio_generation")

    def _generate():
        start_time = time.perf_counter()
        audio = generate_audio(text, voice)
        duration_ms = (time.perf_counter() - start_time) * 1000

        if audio is not None:
            logger.task_complete("async_audio_generation", duration_ms=duration_ms)
        else:
            logger.task_error("async_audio_generation", "Audio generation returned None")

        callback(audio)

    thread = threading.Thread(target=_generate, daemon=True)
    thread.start()


# ---------------------------------------------------------------------------
# Story mode
# ---------------------------------------------------------------------------

def generate_story(terms: Sequence[str], native_lang: Language, target_lang: Language) -> str:
    """
    Write a short story in the target language that uses every saved term,
    followed by a summary in the native language. Keywords come back
    wrapped in asterisks (see highlight_keywords).
    """
    if not terms:
        return EMPTY_NOTEBOOK_STORY

    api = _require_client()
    native, target = native_lang.value, target_lang.value
    logger.api(f"generate_story() - {len(terms)} terms, {target} → {native}")

    messages = [
        {
            "role": "system",
            "content": "You are a playful storyteller who helps language learners memorize vocabulary.\n"
                       + STORY_FORMAT,
        },
        {
            "role": "user",
            "content": (
                f"Write a short, funny, and coherent story in {target} that incorporates "
                f"the following words: {', '.join(terms)}.\n"
                f"After the story, provide a brief summary in {native}.\n"
                "Highlight the keywords in the story by wrapping them in asterisks (*word*)."
            ),
        },
    ]

    logger.api_call("chat.completions.create", model=DEFAULT_CHAT_MODEL)
    try:
        with Timer() as timer:
            completion = api.chat.completions.create(
                model=DEFAULT_CHAT_MODEL,
                messages=messages,
                temperature=0.9,
            )
    except Exception as e:
        logger.api_error(f"Story generation failed: {e}")
        raise
    logger.api_response("chat.completions.create", duration_ms=timer.duration_ms)

    story = (completion.choices[0].message.content or "").strip()
    if not story:
        logger.warning("Story response was empty")
        return STORY_FALLBACK

    logger.success(f"Story generated ({len(story)} chars)")
    return story


def generate_story_async(
    terms: Sequence[str],
    native_lang: Language,
    target_lang: Language,
    callback: Callable[[Optional[str], Optional[Exception]], None],
) -> None:
    """Run generate_story in a background thread; callback(story, error)."""
    logger.task_start("async_story_generation")
    snapshot = list(terms)

    def _generate():
        try:
            story = generate_story(snapshot, native_lang, target_lang)
        except Exception as e:
            logger.task_error("async_story_generation", str(e))
            callback(None, e)
            return
        logger.task_complete("async_story_generation")
        callback(story, None)

    thread = threading.Thread(target=_generate, daemon=True)
    thread.start()


_KEYWORD_PATTERN = re.compile(r"\*([^*\n]+)\*")


def highlight_keywords(story: str) -> List[Tuple[str, bool]]:
    """
    Split a story into (text, is_keyword) runs on *word* markers.

    The asterisks are removed; unmatched asterisks are left as plain text.
    """
    runs: List[Tuple[str, bool]] = []
    for i, part in enumerate(_KEYWORD_PATTERN.split(story or "")):
        if part:
            runs.append((part, i % 2 == 1))
    return runs
