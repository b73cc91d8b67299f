"""Tests for key name encoding."""

import pytest

from ssconnect.codec import decode_name, encode_name


class TestEncodeName:
    """Tests for encode_name()."""

    def test_plain_name_unchanged(self):
        """Test that names without reserved characters pass through."""
        assert encode_name("geneva") == "geneva"
        assert encode_name("Zürich 2") == "Zürich 2"

    def test_separator_escaped(self):
        """Test that '=' never survives encoding."""
        token = encode_name("a=b=c")
        assert "=" not in token
        assert token == "a%3Db%3Dc"

    def test_escape_character_escaped(self):
        """Test that a literal escape sequence is itself escaped."""
        assert encode_name("100%") == "100%25"
        assert encode_name("%3D") == "%253D"

    def test_line_breaks_escaped(self):
        """Test that encoded names stay on one line."""
        token = encode_name("two\nlines\r")
        assert "\n" not in token
        assert "\r" not in token


class TestDecodeName:
    """Tests for decode_name()."""

    @pytest.mark.parametrize("name", [
        "",
        "geneva",
        "a=b",
        "==",
        "%3D",
        "%253D",
        "50% off = deal",
        "multi\nline",
        "ключ=значение",
    ])
    def test_inverse_of_encode(self, name):
        """Test that decode(encode(x)) == x."""
        assert decode_name(encode_name(name)) == name

    def test_unknown_sequences_left_alone(self):
        """Test that stray %xx sequences are not touched."""
        assert decode_name("%41%zz") == "%41%zz"
