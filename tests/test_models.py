import dataclasses

import pytest

from poplingo.models import (
    DEFAULT_NATIVE_LANGUAGE,
    DEFAULT_TARGET_LANGUAGE,
    DictionaryEntry,
    ExampleSentence,
    Language,
)


def test_language_labels():
    assert [language.value for language in Language] == [
        "English", "Spanish", "Mandarin Chinese", "Hindi", "Arabic",
        "Bengali", "Portuguese", "Russian", "Japanese", "French",
    ]
    assert Language("Mandarin Chinese") is Language.MANDARIN
    assert DEFAULT_NATIVE_LANGUAGE is Language.ENGLISH
    assert DEFAULT_TARGET_LANGUAGE is Language.MANDARIN


def test_unknown_language_label():
    with pytest.raises(ValueError):
        Language("Klingon")


def test_entry_is_immutable():
    entry = DictionaryEntry(term="hola")

    with pytest.raises(dataclasses.FrozenInstanceError):
        entry.definition = "changed"


def test_entries_get_unique_ids():
    assert DictionaryEntry(term="a").id != DictionaryEntry(term="a").id


def test_from_response_accepts_snake_case_usage_note():
    entry = DictionaryEntry.from_response("hola", {"usage_note": "Very common."})

    assert entry.usage_note == "Very common."
    assert entry.examples == ()
    assert entry.first_example is None


def test_from_response_drops_mime_without_image():
    entry = DictionaryEntry.from_response("hola", {}, image_bytes=b"", image_mime="image/png")

    assert entry.image_bytes is None
    assert entry.image_mime is None
    assert entry.has_image is False


def test_from_response_null_example_fields_become_empty():
    entry = DictionaryEntry.from_response(
        "hola",
        {"examples": [{"text": None, "translation": None}, {"text": "¡Hola!", "translation": None}]},
    )

    assert entry.examples[0] == ExampleSentence("", "")
    assert entry.examples[1] == ExampleSentence("¡Hola!", "")


def test_first_example():
    entry = DictionaryEntry.from_response(
        "hola",
        {"examples": [{"text": "¡Hola!", "translation": "Hi!"}, {"text": "Hola, Ana.", "translation": "Hi, Ana."}]},
    )

    assert entry.first_example == ExampleSentence("¡Hola!", "Hi!")
