from __future__ import annotations

from library_system.utils.validators import TextValidator


class Author:
    """An author cited by one or more library items.

    Authors are shared by reference: every item citing the same author holds the
    same instance, so renaming a loaded Author is visible to all of them.
    """

    def __init__(self, id: str, name: str) -> None:
        self._id = TextValidator.require_id(id, "Author")
        self._name = TextValidator.require_text(name, "Author name")

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = TextValidator.require_text(value, "Author name")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Author):
            return NotImplemented
        return self._id == other._id and self._name == other._name

    def __repr__(self) -> str:  # pragma: no cover - repr formatting trivial
        return f"Author(id={self._id!r}, name={self._name!r})"
