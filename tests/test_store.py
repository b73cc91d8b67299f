"""Tests for the access key store."""

import stat

import pytest

from ssconnect.errors import InvalidTransport
from ssconnect.store import AccessKey, KeyStore

from tests.conftest import GENEVA, ZURICH

BERN = "ss://BBB@5.6.7.8:8389"


@pytest.fixture
def filled(store) -> KeyStore:
    store.add(GENEVA, "geneva")
    store.add(ZURICH, "zurich")
    store.add(BERN, "bern")
    return store


class TestEnsureExists:
    """Tests for KeyStore.ensure_exists()."""

    def test_creates_owner_only(self, store):
        """Test that directory and file are created with owner-only access."""
        store.ensure_exists()
        assert store.path.is_file()
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600
        assert stat.S_IMODE(store.path.parent.stat().st_mode) == 0o700

    def test_idempotent(self, store):
        """Test that existing content survives a second call."""
        store.add(GENEVA, "geneva")
        store.ensure_exists()
        assert len(store) == 1


class TestAdd:
    """Tests for KeyStore.add()."""

    def test_add_then_get(self, store):
        """Test that a stored transport comes back unchanged."""
        store.add(ZURICH, "zurich")
        assert store.get("zurich").transport == ZURICH

    def test_record_format(self, store):
        """Test the on-disk line format with an encoded name."""
        store.add(GENEVA, "a=b")
        assert store.path.read_text() == f"a%3Db={GENEVA}\n"
        assert store.get("a=b") == AccessKey("a=b", GENEVA)

    def test_default_name_is_host(self, store):
        """Test that the name defaults to the server address."""
        key, position, replaced = store.add(GENEVA)
        assert key.name == "1.2.3.4"
        assert position == 1
        assert not replaced

    def test_replace_keeps_position(self, filled):
        """Test that re-adding a name updates it in place."""
        key, position, replaced = filled.add("ss://NEW@9.9.9.9:1234", "zurich")
        assert replaced
        assert position == 2
        assert [k.name for k in filled.keys()] == ["geneva", "zurich", "bern"]
        assert filled.get("2").transport == "ss://NEW@9.9.9.9:1234"

    def test_replace_is_case_insensitive(self, filled):
        """Test that names differing only in case are the same key."""
        filled.add("ss://NEW@9.9.9.9:1234", "GENEVA")
        assert len(filled) == 3
        assert filled.get("1") == AccessKey("GENEVA", "ss://NEW@9.9.9.9:1234")

    def test_numeric_name_not_positional(self, filled):
        """Test that adding a key named '2' does not overwrite position 2."""
        filled.add("ss://NEW@9.9.9.9:1234", "2")
        assert len(filled) == 4
        assert filled.get("2").name == "zurich"

    def test_invalid_transport(self, store):
        """Test that malformed keys are rejected and nothing is stored."""
        with pytest.raises(InvalidTransport):
            store.add("https://example.com", "web")
        assert len(store) == 0


class TestFind:
    """Tests for KeyStore.find() and get()."""

    def test_by_position(self, filled):
        """Test 1-based positional lookup."""
        assert filled.find("1") == 1
        assert filled.find("3") == 3
        assert filled.get("3").name == "bern"

    def test_position_out_of_range(self, filled):
        """Test that positions outside the store do not resolve."""
        assert filled.find("0") is None
        assert filled.find("4") is None

    def test_by_name_case_insensitive(self, filled):
        """Test name lookup ignoring case."""
        assert filled.find("ZuRiCh") == 2

    def test_first_match_wins(self, store):
        """Test that the first record with a name is returned."""
        store.path.parent.mkdir(parents=True)
        store.path.write_text(f"dup={GENEVA}\ndup={BERN}\n")
        assert store.find("dup") == 1
        assert store.get("dup").transport == GENEVA

    def test_unknown(self, filled):
        """Test that unknown names and empty identifiers do not resolve."""
        assert filled.find("basel") is None
        assert filled.find("") is None
        assert filled.get("basel") is None

    def test_missing_file(self, store):
        """Test lookups before anything was stored."""
        assert store.find("1") is None
        assert store.keys() == []

    def test_digit_name_is_positional(self, store):
        """Test that an all-digit identifier always means a position."""
        store.add(GENEVA, "2")
        store.add(BERN, "bern")
        assert store.get("2").name == "bern"
        assert store.find_name("2") == 1


class TestRemove:
    """Tests for KeyStore.remove()."""

    def test_remove_shifts_positions(self, filled):
        """Test that later keys move up by one."""
        assert filled.remove("geneva")
        assert len(filled) == 2
        assert filled.get("1").name == "zurich"
        assert filled.get("2").name == "bern"

    def test_remove_by_position(self, filled):
        """Test removing by index."""
        assert filled.remove("2")
        assert [k.name for k in filled.keys()] == ["geneva", "bern"]

    def test_remove_unknown_is_noop(self, filled):
        """Test that removing an unknown key changes nothing."""
        assert not filled.remove("basel")
        assert not filled.remove("9")
        assert len(filled) == 3

    def test_remove_from_missing_store(self, store):
        """Test that removing from an empty store fails without creating it."""
        assert not store.remove("1")
        assert not store.path.exists()

    def test_remove_numeric_name_is_positional(self, store):
        """Test that remove('1') removes position 1 even if another key is named '1'."""
        store.add(GENEVA, "geneva")
        store.add(BERN, "1")
        assert store.remove("1")
        assert [k.name for k in store.keys()] == ["1"]


class TestList:
    """Tests for KeyStore.list()."""

    def test_empty_store(self, store):
        """Test that an empty store lists nothing."""
        assert list(store.list()) == []
        assert list(store.list("%name")) == []

    def test_template(self, filled):
        """Test rendering every key with its position."""
        assert list(filled.list("%index:%name:%ip")) == [
            "1:geneva:1.2.3.4",
            "2:zurich:zurich.example.com",
            "3:bern:5.6.7.8",
        ]

    def test_default_table(self, filled):
        """Test the aligned default layout."""
        assert list(filled.list()) == [
            "1  geneva  1.2.3.4",
            "2  zurich  zurich.example.com",
            "3  bern    5.6.7.8",
        ]

    def test_restartable(self, filled):
        """Test that the listing can be iterated again and sees new keys."""
        listing = filled.list("%name")
        assert list(listing) == ["geneva", "zurich", "bern"]
        filled.add("ss://NEW@9.9.9.9:1234", "basel")
        assert list(listing) == ["geneva", "zurich", "bern", "basel"]

    def test_lazy(self, filled):
        """Test that rendering happens on iteration, not on list()."""
        listing = filled.list("%name")
        filled.remove("1")
        assert next(iter(listing)) == "zurich"
