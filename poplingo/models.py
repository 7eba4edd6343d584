import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Language(str, Enum):
    """Languages offered in the setup selectors. Values are display labels."""
    ENGLISH = "English"
    SPANISH = "Spanish"
    MANDARIN = "Mandarin Chinese"
    HINDI = "Hindi"
    ARABIC = "Arabic"
    BENGALI = "Bengali"
    PORTUGUESE = "Portuguese"
    RUSSIAN = "Russian"
    JAPANESE = "Japanese"
    FRENCH = "French"


DEFAULT_NATIVE_LANGUAGE = Language.ENGLISH
DEFAULT_TARGET_LANGUAGE = Language.MANDARIN


@dataclass(frozen=True)
class ExampleSentence:
    """One usage example for a looked-up term."""
    text: str                        # Sentence in the target language
    translation: str                 # Same sentence in the native language


@dataclass(frozen=True)
class DictionaryEntry:
    """
    Result of a successful lookup.

    Entries are immutable; the notebook stores them as-is and identifies them
    by ``term`` (for save/unsave) or ``id`` (for deletion).
    """
    term: str
    definition: str = ""
    examples: Tuple[ExampleSentence, ...] = ()
    usage_note: str = ""
    image_bytes: Optional[bytes] = None      # Encoded image (PNG from the image model)
    image_mime: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)

    @property
    def has_image(self) -> bool:
        return bool(self.image_bytes)

    @property
    def first_example(self) -> Optional[ExampleSentence]:
        return self.examples[0] if self.examples else None

    @classmethod
    def from_response(
        cls,
        term: str,
        data: Dict[str, Any],
        image_bytes: Optional[bytes] = None,
        image_mime: Optional[str] = None,
    ) -> "DictionaryEntry":
        """
        Build an entry from the chat model's JSON payload.

        Missing fields become empty values and example items that are not
        objects are dropped, so a sloppy response still yields a usable card.
        """
        examples = []
        for item in data.get("examples") or []:
            if not isinstance(item, dict):
                continue
            examples.append(ExampleSentence(
                text=str(item.get("text") or "").strip(),
                translation=str(item.get("translation") or "").strip(),
            ))

        return cls(
            term=term,
            definition=str(data.get("definition") or "").strip(),
            examples=tuple(examples),
            usage_note=str(data.get("usageNote") or data.get("usage_note") or "").strip(),
            image_bytes=image_bytes or None,
            image_mime=image_mime if image_bytes else None,
        )
