"""
JSON structures the chat model is asked to produce.

The lookup prompt embeds ENTRY_RESPONSE_SCHEMA so the model's JSON-mode
output can be parsed straight into a DictionaryEntry.
"""

ENTRY_RESPONSE_SCHEMA = """
Return ONLY a JSON object with exactly this structure:

{
  "definition": "Natural definition of the term, written in the native language",
  "examples": [
    {"text": "Example sentence in the target language", "translation": "Its translation in the native language"},
    {"text": "Second example sentence in the target language", "translation": "Its translation in the native language"}
  ],
  "usageNote": "Cultural nuance, tone or synonyms, written in the native language"
}

- "examples" MUST contain exactly 2 items.
- Use natural, everyday sentences a native speaker would actually say.
- The usage note is fun, lively and casual, like a friend talking. Be concise. No greetings.
"""

STORY_FORMAT = """
Formatting rules:
- Wrap every one of the given words in asterisks wherever it appears in the story, like *word*.
- After the story, leave a blank line and write a brief summary in the native language.
- Plain text only, no headings or markdown other than the asterisks.
"""
