"""Central keybinding registry for the live interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from textual.binding import Binding


@dataclass(frozen=True, slots=True)
class KeybindSpec:
    """Declarative keybinding specification.

    ``keys`` are textual key names; ``action`` is the app action they run and
    ``sequence`` is how the binding is shown in the footer.
    """

    id: str
    label: str
    sequence: str
    keys: tuple[str, ...]
    action: str
    description: str


class KeybindConflictError(ValueError):
    """Raised when two keybinds share the same key."""


QUIT = "app.exit"
CLEAR = "input.clear"


DEFAULT_KEYBINDS: tuple[KeybindSpec, ...] = (
    KeybindSpec(
        id=QUIT,
        label="Quit",
        sequence="Esc",
        keys=("escape", "ctrl+q", "ctrl+c"),
        action="quit",
        description="Leave musicfind (also Ctrl+Q, Ctrl+C).",
    ),
    KeybindSpec(
        id=CLEAR,
        label="Clear",
        sequence="^U",
        keys=("ctrl+u",),
        action="clear_query",
        description="Clear the whole query.",
    ),
)


def build_keymap(specs: Iterable[KeybindSpec] = DEFAULT_KEYBINDS) -> dict[str, str]:
    """Map every key to its keybind id."""
    keymap: dict[str, str] = {}
    for spec in specs:
        for key in spec.keys:
            existing = keymap.get(key)
            if existing is not None and existing != spec.id:
                raise KeybindConflictError(
                    f"Key {key!r} is bound to both '{existing}' and '{spec.id}'"
                )
            keymap[key] = spec.id
    return keymap


def to_bindings(specs: Iterable[KeybindSpec] = DEFAULT_KEYBINDS) -> list[Binding]:
    """App-level textual bindings, checked before the focused widget sees the key."""
    specs = tuple(specs)
    build_keymap(specs)
    return [
        Binding(
            ",".join(spec.keys),
            spec.action,
            spec.label,
            key_display=spec.sequence,
            priority=True,
        )
        for spec in specs
    ]
