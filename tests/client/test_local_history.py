from app.client.local_history import MAX_ENTRIES, LocalHistory
from app.schemas.location import LocationCreate


def place(i: int) -> LocationCreate:
    return LocationCreate(name=f"Place {i}", latitude=float(i % 90), longitude=float(i % 180))


def test_load_missing_file(tmp_path):
    history = LocalHistory(tmp_path / "history.json")

    assert history.load() == []
    assert history.count() == 0


def test_add_newest_first(tmp_path):
    history = LocalHistory(tmp_path / "history.json")

    first = history.add(place(1))
    second = history.add(place(2))

    entries = history.load()
    assert [e.id for e in entries] == [second.id, first.id]
    assert first.id != second.id
    assert entries[1].accuracy is None


def test_add_caps_entries(tmp_path):
    history = LocalHistory(tmp_path / "history.json")

    for i in range(MAX_ENTRIES + 5):
        history.add(place(i))

    entries = history.load()
    assert len(entries) == MAX_ENTRIES
    assert entries[0].name == f"Place {MAX_ENTRIES + 4}"


def test_remove(tmp_path):
    history = LocalHistory(tmp_path / "history.json")
    keep = history.add(place(1))
    drop = history.add(place(2))

    history.remove(drop.id)
    history.remove("unknown")

    assert [e.id for e in history.load()] == [keep.id]


def test_clear(tmp_path):
    history = LocalHistory(tmp_path / "history.json")
    history.add(place(1))

    history.clear()
    history.clear()

    assert history.load() == []


def test_corrupt_file_is_reset(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not valid json", encoding="utf-8")
    history = LocalHistory(path)

    assert history.load() == []
    assert not path.exists()


def test_undecodable_file_is_reset(tmp_path):
    path = tmp_path / "history.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    history = LocalHistory(path)

    assert history.load() == []
    assert not path.exists()

    entry = history.add(place(1))
    assert [e.id for e in history.load()] == [entry.id]


def test_unwritable_location_is_ignored(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    history = LocalHistory(blocker / "history.json")

    assert history.add(place(1)) is None
    assert history.load() == []
    assert history.is_available() is False


def test_is_available(tmp_path):
    assert LocalHistory(tmp_path / "nested" / "history.json").is_available() is True
