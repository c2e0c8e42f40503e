from __future__ import annotations

from library_system.utils.validators import TextValidator


class User:
    """A library member."""

    def __init__(self, id: str, name: str) -> None:
        self._id = TextValidator.require_id(id, "User")
        self._name = TextValidator.require_text(name, "User name")

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = TextValidator.require_text(value, "User name")

    def clone(self) -> "User":
        return User(self._id, self._name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self._id == other._id and self._name == other._name

    def __repr__(self) -> str:  # pragma: no cover - repr formatting trivial
        return f"User(id={self._id!r}, name={self._name!r})"
