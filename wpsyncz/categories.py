"""The fixed set of data categories that can be synchronized."""

from enum import Enum
from typing import Iterable


class Category(str, Enum):
    """Data categories, in the order they are synchronized by default."""

    MEDIA = "media"
    """Uploaded media files"""

    PLUGINS = "plugins"
    """Installed plugins and their activation state"""

    DB = "db"
    """Database contents"""

    @classmethod
    def parse(cls, token: str) -> "Category":
        """Parse a category token, accepting the long aliases.

        Raises:
            ValueError: If the token is not a known category
        """
        token = token.strip().lower()
        token = CATEGORY_ALIASES.get(token, token)
        try:
            return cls(token)
        except ValueError:
            choices = ", ".join(c.value for c in cls)
            raise ValueError(
                f"Unknown category: {token!r} (choose from {choices})"
            ) from None


CATEGORY_ALIASES = {
    "extensions": "plugins",
    "database": "db",
}

DEFAULT_CATEGORIES: tuple[Category, ...] = (Category.MEDIA, Category.PLUGINS, Category.DB)

CATEGORY_TOKENS: tuple[str, ...] = tuple(c.value for c in Category) + tuple(
    CATEGORY_ALIASES
)


def parse_categories(tokens: Iterable[str]) -> list[Category]:
    """Parse category tokens, dropping duplicates and keeping the given order.

    An empty list selects :data:`DEFAULT_CATEGORIES`.

    Examples:
        >>> [c.value for c in parse_categories(["db", "extensions", "db"])]
        ['db', 'plugins']
    """
    categories: list[Category] = []
    for token in tokens:
        category = Category.parse(token)
        if category not in categories:
            categories.append(category)
    return categories or list(DEFAULT_CATEGORIES)
