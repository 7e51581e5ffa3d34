"""
br_cli/utils/keys.py

Key definitions for Input.dispatchKeyEvent and parsing of key chords like "Control+A".
"""

from typing import NamedTuple


class KeyDefinition(NamedTuple):
    key: str
    code: str
    key_code: int
    text: str | None = None


MODIFIER_BITS: dict[str, int] = {
    "Alt": 1,
    "Control": 2,
    "Meta": 4,
    "Shift": 8,
}

MODIFIER_ALIASES: dict[str, str] = {
    "Ctrl": "Control",
    "ControlOrMeta": "Control",
    "Cmd": "Meta",
    "Command": "Meta",
    "Option": "Alt",
}

SPECIAL_KEYS: dict[str, KeyDefinition] = {
    "Enter": KeyDefinition("Enter", "Enter", 13, "\r"),
    "Tab": KeyDefinition("Tab", "Tab", 9),
    "Escape": KeyDefinition("Escape", "Escape", 27),
    "Backspace": KeyDefinition("Backspace", "Backspace", 8),
    "Delete": KeyDefinition("Delete", "Delete", 46),
    "Insert": KeyDefinition("Insert", "Insert", 45),
    "Space": KeyDefinition(" ", "Space", 32, " "),
    "ArrowUp": KeyDefinition("ArrowUp", "ArrowUp", 38),
    "ArrowDown": KeyDefinition("ArrowDown", "ArrowDown", 40),
    "ArrowLeft": KeyDefinition("ArrowLeft", "ArrowLeft", 37),
    "ArrowRight": KeyDefinition("ArrowRight", "ArrowRight", 39),
    "Home": KeyDefinition("Home", "Home", 36),
    "End": KeyDefinition("End", "End", 35),
    "PageUp": KeyDefinition("PageUp", "PageUp", 33),
    "PageDown": KeyDefinition("PageDown", "PageDown", 34),
    **{
        f"F{n}": KeyDefinition(f"F{n}", f"F{n}", 111 + n)
        for n in range(1, 13)
    },
    **{
        name: KeyDefinition(name, f"{name}Left", 16 + index)
        for index, name in enumerate(("Shift", "Control", "Alt"))
    },
    "Meta": KeyDefinition("Meta", "MetaLeft", 91),
}


def key_for_character(char: str) -> KeyDefinition:
    """Build the key definition that types a single character."""
    if char.isascii() and char.isalpha():
        return KeyDefinition(char, f"Key{char.upper()}", ord(char.upper()), char)
    if char.isascii() and char.isdigit():
        return KeyDefinition(char, f"Digit{char}", ord(char), char)
    if char == " ":
        return SPECIAL_KEYS["Space"]
    if char == "\n":
        return SPECIAL_KEYS["Enter"]
    return KeyDefinition(char, "", 0, char)


def parse_key_chord(chord: str) -> tuple[list[str], KeyDefinition]:
    """
    Split a chord such as "Control+Shift+A" into modifiers and the main key.
    Args:
        chord: Key name, single character, or modifiers joined to a key with '+'.
    Returns:
        (modifier names, main key definition)
    Raises:
        ValueError: If the chord names an unknown key or modifier.
    """
    if chord == "+" or not chord.endswith("++"):
        parts = chord.split("+") if chord != "+" else ["+"]
    else:
        parts = chord[:-2].split("+") + ["+"]

    *modifier_names, key_name = parts
    modifiers: list[str] = []
    for name in modifier_names:
        name = MODIFIER_ALIASES.get(name, name)
        if name not in MODIFIER_BITS:
            raise ValueError(f'Unknown modifier: "{name}"')
        modifiers.append(name)

    key_name = MODIFIER_ALIASES.get(key_name, key_name)
    if key_name in SPECIAL_KEYS:
        key = SPECIAL_KEYS[key_name]
    elif len(key_name) == 1:
        key = key_for_character(key_name)
    else:
        raise ValueError(f'Unknown key: "{key_name}"')

    if "Shift" in modifiers and key.text and key.text.isalpha():
        key = key._replace(key=key.key.upper(), text=key.text.upper())
    return modifiers, key


def modifier_mask(modifiers: list[str]) -> int:
    mask = 0
    for name in modifiers:
        mask |= MODIFIER_BITS[name]
    return mask
