from __future__ import annotations

import json

import pytest

from errors import CORRUPT_STORE, PersistenceError
from models import StudySession, VocabularyWord, WordStatus
from session_store import CORRUPT_BACKUP_PREFIX, STORAGE_KEY, SessionStore, deserialize_sessions
from storage import LocalStorage


def _session(session_id: str, *terms: str) -> StudySession:
    words = tuple(VocabularyWord(f"{session_id}-{t}", t) for t in terms)
    return StudySession(id=session_id, timestamp=1, title=session_id, words=words)


# ---------------------------------------------------------------
# Load
# ---------------------------------------------------------------

def test_load_without_stored_value_is_empty(memory_storage) -> None:
    store = SessionStore(memory_storage)
    store.load()
    assert store.sessions == ()
    assert store.load_error == ""


def test_round_trip_through_local_storage(tmp_path, sample_session: StudySession) -> None:
    storage = LocalStorage(tmp_path)
    store = SessionStore(storage)
    store.load()
    store.add_session(_session("older", "dog"))
    store.add_session(sample_session)

    reloaded = SessionStore(LocalStorage(tmp_path))
    reloaded.load()

    assert reloaded.sessions == store.sessions
    assert [s.id for s in reloaded.sessions] == ["s1", "older"]


def test_corrupt_value_is_backed_up_and_library_starts_empty(memory_storage) -> None:
    storage = memory_storage
    storage.items[STORAGE_KEY] = "{not json"
    store = SessionStore(storage, clock=lambda: 1700000000.0)
    store.load()

    assert store.sessions == ()
    assert store.load_error == CORRUPT_STORE
    assert store.backup_key == f"{CORRUPT_BACKUP_PREFIX}-1700000000000"
    assert storage.items[store.backup_key] == "{not json"


def test_repeated_corrupt_loads_keep_every_backup(memory_storage) -> None:
    memory_storage.items[STORAGE_KEY] = "{first"
    SessionStore(memory_storage, clock=lambda: 5.0).load()
    memory_storage.items[STORAGE_KEY] = "{second"
    store = SessionStore(memory_storage, clock=lambda: 5.0)
    store.load()

    backups = sorted(k for k in memory_storage.items if k.startswith(CORRUPT_BACKUP_PREFIX))
    assert backups == [f"{CORRUPT_BACKUP_PREFIX}-5000", f"{CORRUPT_BACKUP_PREFIX}-5000-1"]
    assert memory_storage.items[store.backup_key] == "{second"


def test_undecodable_file_is_treated_as_corrupt(tmp_path) -> None:
    storage = LocalStorage(tmp_path)
    (tmp_path / f"{STORAGE_KEY}.json").write_bytes(b"[\xff\xfe broken")
    store = SessionStore(storage)
    store.load()

    assert store.sessions == ()
    assert store.load_error == CORRUPT_STORE
    assert "broken" in storage.get_item(store.backup_key)

    # The library is usable again after the reset.
    store.add_session(_session("a", "x"))
    reloaded = SessionStore(storage)
    reloaded.load()
    assert [s.id for s in reloaded.sessions] == ["a"]


def test_backup_write_failure_is_raised(failing_storage) -> None:
    failing_storage.items[STORAGE_KEY] = "{not json"
    store = SessionStore(failing_storage)
    with pytest.raises(PersistenceError):
        store.load()
    assert failing_storage.items[STORAGE_KEY] == "{not json"


def test_wrong_shape_counts_as_corrupt(memory_storage) -> None:
    memory_storage.items[STORAGE_KEY] = json.dumps([{"title": "no id"}])
    storage = memory_storage
    store = SessionStore(storage)
    store.load()
    assert store.load_error == CORRUPT_STORE

    with pytest.raises(ValueError):
        deserialize_sessions(json.dumps({"sessions": []}))


def test_duplicate_ids_are_dropped_on_load(memory_storage) -> None:
    blob = json.dumps([_session("a", "x").to_dict(), _session("a", "y").to_dict()])
    memory_storage.items[STORAGE_KEY] = blob
    store = SessionStore(memory_storage)
    store.load()
    assert len(store.sessions) == 1
    assert store.sessions[0].words[0].term == "x"


# ---------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------

def test_add_session_prepends_and_persists(store: SessionStore, memory_storage) -> None:
    store.add_session(_session("a", "x"))
    store.add_session(_session("b", "y"))

    assert [s.id for s in store.sessions] == ["b", "a"]
    stored = json.loads(memory_storage.items[STORAGE_KEY])
    assert [s["id"] for s in stored] == ["b", "a"]


def test_add_session_rejects_duplicate_id(store: SessionStore) -> None:
    store.add_session(_session("a", "x"))
    with pytest.raises(ValueError):
        store.add_session(_session("a", "y"))


def test_delete_session(store: SessionStore) -> None:
    store.add_session(_session("a", "x"))
    store.add_session(_session("b", "y"))

    assert store.delete_session("a") is True
    assert [s.id for s in store.sessions] == ["b"]


def test_unknown_ids_leave_collection_unchanged(store: SessionStore, memory_storage) -> None:
    store.add_session(_session("a", "x"))
    before = store.sessions
    writes = memory_storage.writes

    assert store.delete_session("missing") is False
    assert store.add_words("missing", [VocabularyWord("n", "new")]) is False
    assert store.update_word("a", "missing", term="z") is False
    assert store.update_word("missing", "a-x", term="z") is False
    assert store.remove_word("a", "missing") is False
    assert store.record_answer("a", "missing", True) is None

    assert store.sessions == before
    assert memory_storage.writes == writes


def test_add_words_appends_in_order(store: SessionStore) -> None:
    store.add_session(_session("a", "x"))
    store.add_words("a", [VocabularyWord("n1", "y"), VocabularyWord("n2", "z")])
    assert [w.term for w in store.get("a").words] == ["x", "y", "z"]


def test_update_word_patches_fields(store: SessionStore) -> None:
    store.add_session(_session("a", "x"))
    assert store.update_word("a", "a-x", meaning="未知", ipa="/eks/") is True
    word = store.get("a").words[0]
    assert word.meaning == "未知"
    assert word.ipa == "/eks/"


def test_update_word_rejects_status(store: SessionStore) -> None:
    store.add_session(_session("a", "x"))
    with pytest.raises(ValueError):
        store.update_word("a", "a-x", status=WordStatus.MASTERED)
    with pytest.raises(ValueError):
        store.update_word("a", "a-x", colour="red")


def test_patching_correct_count_recomputes_status(store: SessionStore) -> None:
    store.add_session(_session("a", "x"))
    store.update_word("a", "a-x", correct_count=3)
    assert store.get("a").words[0].status == WordStatus.MASTERED


def test_remove_word(store: SessionStore) -> None:
    store.add_session(_session("a", "x", "y"))
    assert store.remove_word("a", "a-x") is True
    assert [w.term for w in store.get("a").words] == ["y"]


def test_record_answer_counts_attempts(store: SessionStore) -> None:
    store.add_session(_session("a", "x"))

    word = store.record_answer("a", "a-x", False)
    assert (word.attempts, word.correct_count, word.status) == (1, 0, WordStatus.UNLEARNED)

    word = store.record_answer("a", "a-x", True)
    assert (word.attempts, word.correct_count, word.status) == (2, 1, WordStatus.LEARNING)


def test_on_change_listener_sees_new_collection(memory_storage) -> None:
    seen: list[tuple[StudySession, ...]] = []
    store = SessionStore(memory_storage, on_change=seen.append)
    store.load()
    store.add_session(_session("a", "x"))
    assert seen == [store.sessions]


# ---------------------------------------------------------------
# Flush failures
# ---------------------------------------------------------------

def test_flush_failure_is_raised(failing_storage) -> None:
    store = SessionStore(failing_storage)
    store.load()
    with pytest.raises(PersistenceError):
        store.add_session(_session("a", "x"))
    # The in-memory collection still reflects the mutation.
    assert [s.id for s in store.sessions] == ["a"]


# ---------------------------------------------------------------
# Stats
# ---------------------------------------------------------------

def test_stats_aggregate_all_sessions(store: SessionStore, sample_session: StudySession) -> None:
    store.add_session(sample_session)
    store.add_session(_session("b", "x", "y"))
    stats = store.stats()
    assert stats.total_words == 5
    assert stats.mastered_words == 1
    assert stats.learning_words == 1
    assert stats.remaining_words == 3
