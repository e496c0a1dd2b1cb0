from typing import Optional, TypeVar

T = TypeVar('T')


def ensure(value: Optional[T]) -> T:
    """Ensure a value is not None, raising RuntimeError if it is.

    Args:
        value: The value to check

    Returns:
        The value if it is not None

    Raises:
        RuntimeError: If the value is None
    """
    if value is None:
        raise RuntimeError("Value is None")
    return value


def plural(count: int, word: str, plural_word: Optional[str] = None) -> str:
    """Format a count with a noun ("1 commit", "2 commits", "3 passes")."""
    if count == 1:
        return f"{count} {word}"
    return f"{count} {plural_word or word + 's'}"
