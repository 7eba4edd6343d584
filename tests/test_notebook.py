from poplingo.models import DictionaryEntry, ExampleSentence
from poplingo.notebook import Notebook, StudyDeck


def make_entry(term: str, **kwargs) -> DictionaryEntry:
    kwargs.setdefault("definition", f"definition of {term}")
    kwargs.setdefault("examples", (ExampleSentence(f"{term}!", f"{term} (translated)"),))
    return DictionaryEntry(term=term, **kwargs)


# ---------------------------------------------------------------------------
# Notebook
# ---------------------------------------------------------------------------

def test_toggle_save_prepends_newest_first():
    notebook = Notebook()

    assert notebook.toggle_save(make_entry("猫")) is True
    assert notebook.toggle_save(make_entry("狗")) is True

    assert notebook.terms() == ["狗", "猫"]
    assert len(notebook) == 2


def test_toggle_save_same_term_unsaves():
    notebook = Notebook()
    first = make_entry("hola")
    notebook.toggle_save(first)

    # A fresh lookup of the same term has a different id but the same key
    again = make_entry("hola")
    assert again.id != first.id
    assert notebook.toggle_save(again) is False

    assert len(notebook) == 0
    assert not notebook.is_saved("hola")


def test_terms_stay_unique():
    notebook = Notebook()
    for term in ["a", "b", "a", "a", "c"]:
        notebook.toggle_save(make_entry(term))

    assert sorted(notebook.terms()) == sorted(set(notebook.terms()))
    assert notebook.terms() == ["c", "a", "b"]


def test_delete_by_id():
    notebook = Notebook()
    keep, drop = make_entry("keep"), make_entry("drop")
    notebook.toggle_save(keep)
    notebook.toggle_save(drop)

    notebook.delete(drop.id)

    assert [e.id for e in notebook] == [keep.id]


def test_delete_unknown_id_is_noop():
    calls = []
    notebook = Notebook(on_change=calls.append)
    notebook.toggle_save(make_entry("x"))
    calls.clear()

    notebook.delete("missing")

    assert len(notebook) == 1
    assert calls == []


def test_on_change_fires_for_each_mutation():
    calls = []
    notebook = Notebook(on_change=lambda nb: calls.append(len(nb)))
    entry = make_entry("x")

    notebook.toggle_save(entry)
    notebook.toggle_save(entry)
    notebook.toggle_save(entry)
    notebook.clear()

    assert calls == [1, 0, 1, 0]


def test_entries_returns_a_copy():
    notebook = Notebook()
    notebook.toggle_save(make_entry("x"))

    notebook.entries.clear()

    assert len(notebook) == 1


# ---------------------------------------------------------------------------
# StudyDeck
# ---------------------------------------------------------------------------

def test_empty_deck():
    deck = StudyDeck()

    assert deck.is_empty
    assert deck.current is None
    assert deck.position == "0 / 0"
    assert deck.next() is None
    assert deck.previous() is None
    assert deck.flip() is False


def test_navigation_wraps_both_ways():
    entries = [make_entry(t) for t in ("a", "b", "c")]
    deck = StudyDeck(entries)

    assert deck.current.term == "a"
    assert deck.position == "1 / 3"
    assert deck.previous().term == "c"
    assert deck.position == "3 / 3"
    assert deck.next().term == "a"
    deck.next()
    deck.next()
    assert deck.next().term == "a"


def test_navigation_shows_front_of_next_card():
    deck = StudyDeck([make_entry("a"), make_entry("b")])

    assert deck.flip() is True
    deck.next()

    assert deck.is_flipped is False

    deck.flip()
    deck.previous()
    assert deck.is_flipped is False


def test_flip_toggles():
    deck = StudyDeck([make_entry("a")])

    assert deck.flip() is True
    assert deck.flip() is False


def test_single_card_wraps_to_itself():
    deck = StudyDeck([make_entry("solo")])

    assert deck.next().term == "solo"
    assert deck.previous().term == "solo"


def test_sync_clamps_index_after_deletions():
    entries = [make_entry(t) for t in ("a", "b", "c")]
    deck = StudyDeck(entries)
    deck.previous()
    deck.flip()

    deck.sync(entries[:1])

    assert deck.current.term == "a"
    assert deck.is_flipped is False


def test_sync_keeps_position_when_still_valid():
    entries = [make_entry(t) for t in ("a", "b", "c")]
    deck = StudyDeck(entries)
    deck.next()

    deck.sync(entries + [make_entry("d")])

    assert deck.current.term == "b"
    assert deck.position == "2 / 4"


def test_sync_to_empty():
    deck = StudyDeck([make_entry("a")])

    deck.sync([])

    assert deck.current is None
