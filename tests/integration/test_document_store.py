"""
Integration tests for the filesystem document store.

Tests cover:
- add/put/exists/get round trips
- Override versioning and soft-delete renames
- Listing and purge filters
- Error surfacing for missing, duplicate and malformed entries
- Redundant period keys over stored documents
"""

import logging
import os
import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from fsdms.errors import (
    ContentDecodingError,
    DocumentExistsError,
    DocumentNotFoundError,
    ErrorKind,
    InvalidArgumentError,
    StoreIOError,
)
from fsdms.store import DocumentStore
from fsdms.versioning import MarkerKind, decode, encode_overridden, encode_soft_deleted, is_soft_deleted


class StepClock:
    """Clock advancing by one second per call, starting at a fixed time."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 12, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(data_dir, clock):
    """Create store for a workspace."""
    return DocumentStore(data_dir, "ws", clock=clock)


def names_in(path: Path) -> list[str]:
    return sorted(os.listdir(path))


class TestAddAndRead:
    """Tests for adding and reading documents."""

    def test_workspace_folder_created(self, data_dir, store):
        assert (data_dir / "ws").is_dir()
        assert store.workspace_path == data_dir / "ws"

    def test_add_then_get_text(self, store):
        """Text content round-trips exactly."""
        text = "date,amount\r\n2024-01-01,10.5\n"

        store.add("reports", "jan.csv", text)

        assert store.get_text_content("reports", "jan.csv") == text

    def test_add_creates_directory_lazily(self, data_dir, store):
        assert not (data_dir / "ws" / "reports").exists()

        store.add("reports", "jan.csv", "x")

        assert (data_dir / "ws" / "reports" / "jan.csv").is_file()

    def test_add_nested_directory(self, data_dir, store):
        store.add("reports/2024", "jan.csv", "x")

        assert store.get_keys("reports/2024") == ["jan.csv"]
        assert (data_dir / "ws" / "reports" / "2024" / "jan.csv").is_file()

    def test_add_binary(self, store):
        data = b"\x00\x01\xff"

        store.add("blobs", "b.bin", data)

        assert store.get_binary_content("blobs", "b.bin") == data

    def test_add_with_charset(self, data_dir, store):
        store.add("texts", "a.txt", "Čeština", charset="cp1250")

        assert (data_dir / "ws" / "texts" / "a.txt").read_bytes() == "Čeština".encode("cp1250")
        assert store.get_text_content("texts", "a.txt", charset="cp1250") == "Čeština"

    def test_add_existing_fails(self, store):
        """add never overwrites."""
        store.add("reports", "jan.csv", "first")

        with pytest.raises(DocumentExistsError) as exc_info:
            store.add("reports", "jan.csv", "second")

        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT
        assert store.get_text_content("reports", "jan.csv") == "first"

    def test_add_after_delete_succeeds(self, store):
        """A soft-deleted copy does not collide with a new active document."""
        store.add("reports", "jan.csv", "first")
        store.delete("reports", "jan.csv")

        store.add("reports", "jan.csv", "second")

        assert store.get_text_content("reports", "jan.csv") == "second"

    def test_get_text_lines(self, store):
        store.add("texts", "a.txt", "one\ntwo\nthree\n")

        assert store.get_text_lines("texts", "a.txt") == ["one", "two", "three"]
        assert store.get_text_lines("texts", "a.txt", limit=2) == ["one", "two"]

    def test_get_text_with_alternative_charset(self, store):
        store.add("texts", "a.txt", b"caf\xe9")

        assert store.get_text_content("texts", "a.txt", "utf-8", "cp1252") == "café"
        assert store.get_text_lines("texts", "a.txt", 1, "utf-8", "cp1252") == ["café"]

    def test_default_alternative_charset(self, data_dir, clock):
        store = DocumentStore(data_dir, "ws", clock=clock, alternative_charset="cp1252")
        store.add("texts", "a.txt", b"caf\xe9")

        assert store.get_text_content("texts", "a.txt") == "café"

    def test_decoding_failure_surfaces(self, store):
        store.add("texts", "a.txt", b"caf\xe9")

        with pytest.raises(ContentDecodingError) as exc_info:
            store.get_text_content("texts", "a.txt", "utf-8", "ascii")

        assert exc_info.value.charset == "ascii"
        assert len(exc_info.value.suppressed) == 1

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(DocumentNotFoundError) as exc_info:
            store.get_text_content("reports", "nope.csv")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.key == "nope.csv"

    @pytest.mark.parametrize(
        "read",
        [
            lambda s: s.get_binary_content("d", "k"),
            lambda s: s.get_text_lines("d", "k"),
            lambda s: s.get_properties_content("d", "k"),
            lambda s: s.get_last_modified_time("d", "k"),
        ],
    )
    def test_read_family_not_found(self, store, read):
        with pytest.raises(DocumentNotFoundError):
            read(store)

    def test_get_last_modified_time(self, data_dir, store):
        store.add("reports", "jan.csv", "x")
        path = data_dir / "ws" / "reports" / "jan.csv"
        mtime = datetime(2023, 6, 15, 8, 30, 0).timestamp()
        os.utime(path, (mtime, mtime))

        assert store.get_last_modified_time("reports", "jan.csv") == datetime(2023, 6, 15, 8, 30, 0)

    def test_unsupported_content_type(self, store):
        with pytest.raises(InvalidArgumentError):
            store.add("d", "k", 42)

    def test_unencodable_add_leaves_nothing(self, data_dir, store):
        """A value the charset cannot encode creates no document."""
        with pytest.raises(ContentDecodingError):
            store.add("d", "k", "\u017e", charset="ascii")

        assert not store.exists("d", "k")
        assert store.get_keys("d") == []
        assert not (data_dir / "ws" / "d" / "k").exists()

        store.add("d", "k", "z", charset="ascii")
        assert store.get_text_content("d", "k", charset="ascii") == "z"


class TestPut:
    """Tests for put and override versioning."""

    def test_put_new_returns_true(self, store):
        assert store.put("reports", "jan.csv", "v1") is True
        assert store.get_text_content("reports", "jan.csv") == "v1"

    def test_put_existing_returns_false_and_keeps_old_version(self, data_dir, store):
        """Previous content is kept as an overridden copy."""
        store.put("reports", "jan.csv", "v1")

        assert store.put("reports", "jan.csv", "v2") is False

        assert store.get_text_content("reports", "jan.csv") == "v2"
        directory = data_dir / "ws" / "reports"
        overridden = [n for n in names_in(directory) if n != "jan.csv"]
        assert overridden == [encode_overridden("jan.csv", datetime(2024, 5, 1, 12, 0, 0))]
        assert (directory / overridden[0]).read_text() == "v1"

    def test_overridden_copy_still_listed(self, store):
        """Listings hide only soft-deleted copies."""
        store.put("reports", "jan.csv", "v1")
        store.put("reports", "jan.csv", "v2")

        keys = store.get_keys("reports")

        assert "jan.csv" in keys
        assert len(keys) == 2
        assert decode(keys[0]).kind is MarkerKind.OVERRIDDEN

    def test_overridden_copy_recoverable_by_purge_filter(self, data_dir, store):
        store.put("reports", "jan.csv", "v1")
        store.put("reports", "jan.csv", "v2")

        assert store.purge("reports", "jan.csv") == 1
        assert names_in(data_dir / "ws" / "reports") == ["jan.csv"]

    def test_each_override_gets_own_timestamp(self, data_dir, store):
        for version in ("v1", "v2", "v3"):
            store.put("reports", "jan.csv", version)

        markers = [decode(n) for n in names_in(data_dir / "ws" / "reports") if n != "jan.csv"]
        assert [m.timestamp for m in markers] == [
            datetime(2024, 5, 1, 12, 0, 0),
            datetime(2024, 5, 1, 12, 0, 1),
        ]

    def test_put_binary(self, store):
        store.put("blobs", "b.bin", b"\x01")
        assert store.put("blobs", "b.bin", b"\x02") is False
        assert store.get_binary_content("blobs", "b.bin") == b"\x02"

    def test_put_properties(self, store):
        props = {"currency": "EUR", "iban": "SK00 0000"}

        assert store.put("meta", "account.properties", props) is True
        assert store.put_properties("meta", "account.properties", {"currency": "USD"}) is False

        assert store.get_properties_content("meta", "account.properties") == {"currency": "USD"}

    def test_override_collision_in_same_millisecond(self, data_dir):
        """Two overrides at the same instant fail instead of clobbering a copy."""
        frozen = datetime(2024, 5, 1, 12, 0, 0)
        store = DocumentStore(data_dir, "ws", clock=lambda: frozen)
        store.put("reports", "jan.csv", "v1")
        store.put("reports", "jan.csv", "v2")

        with pytest.raises(StoreIOError):
            store.put("reports", "jan.csv", "v3")

        marker = data_dir / "ws" / "reports" / encode_overridden("jan.csv", frozen)
        assert marker.read_text() == "v1"

    def test_rejected_properties_keep_current_version(self, data_dir, store):
        """Non-string property values fail before the current version is renamed."""
        store.put("meta", "a.properties", {"a": "1"})

        with pytest.raises(InvalidArgumentError, match="must be str"):
            store.put("meta", "a.properties", {"a": 1})

        assert store.get_properties_content("meta", "a.properties") == {"a": "1"}
        assert names_in(data_dir / "ws" / "meta") == ["a.properties"]

    def test_unencodable_put_keeps_current_version(self, data_dir, store):
        store.put("reports", "jan.csv", "v1")

        with pytest.raises(ContentDecodingError):
            store.put("reports", "jan.csv", "\u017e", charset="ascii")

        assert store.get_text_content("reports", "jan.csv") == "v1"
        assert names_in(data_dir / "ws" / "reports") == ["jan.csv"]


class TestExistsAndKeys:
    """Tests for exists and get_keys."""

    def test_exists(self, store):
        assert store.exists("reports", "jan.csv") is False

        store.add("reports", "jan.csv", "x")

        assert store.exists("reports", "jan.csv") is True

    def test_exists_on_missing_directory(self, store):
        assert store.exists("nowhere", "jan.csv") is False

    def test_directory_that_is_a_file(self, data_dir, store):
        """A file where a directory should be is a misconfiguration."""
        (data_dir / "ws" / "reports").write_text("oops")

        with pytest.raises(InvalidArgumentError):
            store.exists("reports", "jan.csv")
        with pytest.raises(InvalidArgumentError):
            store.get_keys("reports")
        with pytest.raises(InvalidArgumentError):
            store.add("reports", "jan.csv", "x")
        with pytest.raises(InvalidArgumentError):
            store.purge("reports")

    def test_get_keys_sorted(self, store):
        for key in ("c.txt", "a.txt", "B.txt", "b.txt"):
            store.add("d", key, key)

        assert store.get_keys("d") == ["B.txt", "a.txt", "b.txt", "c.txt"]

    def test_get_keys_missing_directory(self, store):
        assert store.get_keys("nowhere") == []

    def test_get_keys_never_returns_soft_deleted(self, store):
        for key in ("a", "b", "c"):
            store.add("d", key, key)
        store.put("d", "b", "b2")
        store.delete("d", ["a", "c"])

        keys = store.get_keys("d")

        assert not any(is_soft_deleted(k) for k in keys)
        assert "a" not in keys and "c" not in keys
        assert "b" in keys

    @pytest.mark.parametrize("directory,key", [("", "k"), ("  ", "k"), ("d", ""), ("d", None), ("d", "a/b")])
    def test_invalid_names(self, store, directory, key):
        with pytest.raises(InvalidArgumentError):
            store.add(directory, key, "x")
        with pytest.raises(InvalidArgumentError):
            store.exists(directory, key)


class TestDelete:
    """Tests for soft-delete."""

    def test_delete_then_exists_false(self, store):
        store.add("reports", "jan.csv", "x")

        store.delete("reports", "jan.csv")

        assert store.exists("reports", "jan.csv") is False
        assert store.get_keys("reports") == []

    def test_deleted_content_kept_until_purge(self, data_dir, store):
        store.add("reports", "jan.csv", "precious")

        store.delete("reports", "jan.csv")

        marker = data_dir / "ws" / "reports" / encode_soft_deleted("jan.csv", datetime(2024, 5, 1, 12, 0, 0))
        assert marker.read_text() == "precious"

    def test_second_delete_fails(self, store):
        """Deleting twice raises, never silently succeeds."""
        store.add("reports", "jan.csv", "x")
        store.delete("reports", "jan.csv")

        with pytest.raises(DocumentNotFoundError):
            store.delete("reports", "jan.csv")

    def test_delete_batch_uses_fresh_timestamp_per_key(self, data_dir, store):
        store.add("d", "a", "a")
        store.add("d", "b", "b")

        store.delete("d", ["a", "b"])

        markers = sorted((decode(n) for n in names_in(data_dir / "ws" / "d")), key=lambda m: m.original_name)
        assert [(m.original_name, m.timestamp) for m in markers] == [
            ("a", datetime(2024, 5, 1, 12, 0, 0)),
            ("b", datetime(2024, 5, 1, 12, 0, 1)),
        ]

    def test_delete_batch_validates_all_keys_first(self, store):
        """A malformed key aborts the batch before any rename."""
        store.add("d", "a", "a")

        with pytest.raises(InvalidArgumentError):
            store.delete("d", ["a", ""])

        assert store.exists("d", "a")

    def test_delete_batch_missing_key_keeps_earlier_renames(self, store):
        """No rollback: keys before the missing one stay deleted."""
        store.add("d", "a", "a")
        store.add("d", "c", "c")

        with pytest.raises(DocumentNotFoundError) as exc_info:
            store.delete("d", ["a", "missing", "c"])

        assert exc_info.value.key == "missing"
        assert not store.exists("d", "a")
        assert store.exists("d", "c")

    def test_delete_missing_directory(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.delete("nowhere", "a")


class TestPurge:
    """Tests for purge."""

    def test_purge_removes_all_obsolete(self, data_dir, store):
        store.put("d", "a", "1")
        store.put("d", "a", "2")
        store.add("d", "b", "b")
        store.delete("d", "b")

        assert store.purge("d") == 2

        assert names_in(data_dir / "ws" / "d") == ["a"]

    def test_purge_missing_directory(self, store):
        assert store.purge("nowhere") == 0

    def test_purge_by_original_key(self, data_dir, store):
        store.add("d", "a", "a")
        store.add("d", "b", "b")
        store.delete("d", ["a", "b"])

        assert store.purge("d", "a") == 1

        remaining = [decode(n).original_name for n in names_in(data_dir / "ws" / "d")]
        assert remaining == ["b"]

    def test_purge_cutoff_is_strict(self, data_dir, clock, store):
        """Only copies obsolete strictly before the cutoff are removed."""
        for i in range(3):
            store.add("d", f"k{i}", "x")
        store.delete("d", ["k0", "k1", "k2"])  # at 12:00:00, 12:00:01, 12:00:02

        assert store.purge("d", cutoff=datetime(2024, 5, 1, 12, 0, 1)) == 1

        remaining = sorted(decode(n).original_name for n in names_in(data_dir / "ws" / "d"))
        assert remaining == ["k1", "k2"]

    def test_deleted_document_recoverable_until_purge_after_deletion(self, data_dir, store):
        store.add("d", "a", "a")
        store.delete("d", "a")
        deleted_at = datetime(2024, 5, 1, 12, 0, 0)

        assert store.purge("d", "a", deleted_at) == 0
        assert len(names_in(data_dir / "ws" / "d")) == 1

        assert store.purge("d", "a", deleted_at + timedelta(milliseconds=1)) == 1
        assert names_in(data_dir / "ws" / "d") == []

    def test_purge_keeps_active_and_foreign_files(self, data_dir, store):
        store.add("d", "a", "a")
        (data_dir / "ws" / "d" / "_DEL_notes.txt").write_text("not a marker")

        assert store.purge("d") == 0
        assert names_in(data_dir / "ws" / "d") == ["_DEL_notes.txt", "a"]

    def test_undated_marker_hidden_and_purged_without_cutoff(self, data_dir, store):
        """A marker whose stamp is not a real date is obsolete, but never older than a cutoff."""
        store.add("d", "a", "a")
        undated = "_DEL_20241307_090502_045_!@#-b"
        (data_dir / "ws" / "d" / undated).write_text("b")

        assert store.get_keys("d") == ["a"]
        assert store.purge("d", cutoff=datetime(2100, 1, 1)) == 0
        assert store.purge("d", "b") == 1
        assert names_in(data_dir / "ws" / "d") == ["a"]

    def test_purge_logs_hard_deletes(self, store, caplog):
        store.add("d", "a", "a")
        store.delete("d", "a")

        with caplog.at_level(logging.INFO, logger="fsdms.store.document_store"):
            store.purge("d")

        assert "Hard deleting" in caplog.text


class TestRedundantPeriodKeys:
    """Tests for redundant period keys over stored documents."""

    @staticmethod
    def parse(raw_key: str):
        # statement_<start>_<end>.csv
        if not raw_key.startswith("statement_"):
            return None
        start, end = raw_key[len("statement_"):-len(".csv")].split("_")
        return (date.fromisoformat(start), date.fromisoformat(end))

    def test_monthly_superseded_by_yearly(self, store):
        store.add("st", "statement_2023-01-01_2023-12-31.csv", "y")
        store.add("st", "statement_2023-03-01_2023-03-31.csv", "m")
        store.add("st", "statement_2024-01-01_2024-01-31.csv", "m")
        store.add("st", "readme.txt", "ignored")

        redundant = store.get_redundant_period_keys("st", self.parse, lambda k: k[0], lambda k: k[1])

        assert redundant == {
            (date(2023, 3, 1), date(2023, 3, 31)): "statement_2023-03-01_2023-03-31.csv",
        }

    def test_no_documents(self, store):
        assert store.get_redundant_period_keys("st", self.parse, lambda k: k[0], lambda k: k[1]) == {}

    def test_deleted_documents_ignored(self, store):
        store.add("st", "statement_2023-01-01_2023-12-31.csv", "y")
        store.add("st", "statement_2023-03-01_2023-03-31.csv", "m")
        store.delete("st", "statement_2023-01-01_2023-12-31.csv")

        assert store.get_redundant_period_keys("st", self.parse, lambda k: k[0], lambda k: k[1]) == {}

    def test_duplicate_derived_key(self, store):
        store.add("st", "a", "x")
        store.add("st", "b", "x")

        with pytest.raises(InvalidArgumentError, match="Duplicate key"):
            store.get_redundant_period_keys(
                "st",
                lambda raw: "same",
                lambda k: date(2024, 1, 1),
                lambda k: date(2024, 1, 31),
            )

    def test_redundant_keys_of_plain_collection(self, store):
        keys = [(date(2024, 1, 1), date(2024, 1, 31)), (date(2024, 1, 5), date(2024, 1, 6))]

        assert store.get_redundant_keys(keys, lambda k: k[0], lambda k: k[1]) == [keys[1]]
