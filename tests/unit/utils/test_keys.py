"""
tests/unit/utils/test_keys.py

Tests for key chord parsing.
"""

import pytest

from br_cli.utils.keys import SPECIAL_KEYS, key_for_character, modifier_mask, parse_key_chord


class TestParseKeyChord:
    """
    Tests for parse_key_chord.
    """

    def test_named_key(self) -> None:
        modifiers, key = parse_key_chord("Enter")
        assert modifiers == []
        assert key == SPECIAL_KEYS["Enter"]
        assert key.text == "\r"

    def test_single_character(self) -> None:
        modifiers, key = parse_key_chord("a")
        assert modifiers == []
        assert (key.key, key.code, key.key_code, key.text) == ("a", "KeyA", 65, "a")

    def test_chord_with_modifiers(self) -> None:
        modifiers, key = parse_key_chord("Control+Shift+a")
        assert modifiers == ["Control", "Shift"]
        assert key.key == "A"
        assert key.text == "A"

    def test_modifier_aliases(self) -> None:
        modifiers, _ = parse_key_chord("Ctrl+Cmd+Option+x")
        assert modifiers == ["Control", "Meta", "Alt"]

    @pytest.mark.parametrize("chord,modifiers", [("+", []), ("Shift++", ["Shift"])])
    def test_plus_key(self, chord: str, modifiers: list[str]) -> None:
        parsed_modifiers, key = parse_key_chord(chord)
        assert parsed_modifiers == modifiers
        assert key.key == "+"

    @pytest.mark.parametrize("chord", ["NotAKey", "Hyper+a", "Shift+", ""])
    def test_unknown_keys_raise(self, chord: str) -> None:
        with pytest.raises(ValueError):
            parse_key_chord(chord)

    def test_modifier_mask(self) -> None:
        assert modifier_mask([]) == 0
        assert modifier_mask(["Alt", "Shift"]) == 9
        assert modifier_mask(["Control", "Meta"]) == 6


class TestKeyForCharacter:
    """
    Tests for key_for_character.
    """

    def test_digit(self) -> None:
        key = key_for_character("7")
        assert (key.code, key.key_code, key.text) == ("Digit7", 55, "7")

    def test_space_and_newline(self) -> None:
        assert key_for_character(" ") == SPECIAL_KEYS["Space"]
        assert key_for_character("\n") == SPECIAL_KEYS["Enter"]

    def test_other_characters_still_produce_text(self) -> None:
        key = key_for_character("é")
        assert key.text == "é"
        assert key.key_code == 0
