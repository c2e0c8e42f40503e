from typing import Optional

from library_system.exceptions import InvalidArgumentError


class TextValidator:
    """Non-empty checks for ids and names, raising InvalidArgumentError on failure."""

    @staticmethod
    def is_non_empty(text: Optional[str]) -> bool:
        if text is None:
            return False
        return bool(str(text))

    @staticmethod
    def require_id(value: Optional[str], label: str) -> str:
        if not TextValidator.is_non_empty(value):
            raise InvalidArgumentError(f"{label} ID cannot be empty.")
        return value

    @staticmethod
    def require_text(value: Optional[str], label: str) -> str:
        if not TextValidator.is_non_empty(value):
            raise InvalidArgumentError(f"{label} cannot be empty.")
        return value


class YearValidator:

    @staticmethod
    def require_positive(year) -> int:
        # bool is an int subclass
        if isinstance(year, bool) or not isinstance(year, int) or year <= 0:
            raise InvalidArgumentError("Publication year must be positive.")
        return year
