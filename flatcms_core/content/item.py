"""FlatCMS Item - Content Item and Metadata.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as date_type, datetime
from typing import Any, Dict, List, Mapping, Optional

STANDARD_FIELDS = (
    "slug",
    "title",
    "date",
    "author",
    "featured",
    "status",
    "tags",
    "categories",
    "image",
    "excerpt",
)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def parse_date(value: Any) -> datetime:
    """Parse a front matter date.

    Accepts datetimes, dates (as YAML produces them), epoch seconds and
    ISO 8601 strings.

    Raises:
        ValueError: If the value is not a recognisable date
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date_type):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"Invalid date format: {value}")
    raise ValueError(f"Date must be a string or datetime, got {type(value).__name__}")


@dataclass(frozen=True)
class ItemMetadata:
    """Metadata of a content item.

    Attributes:
        slug: URL slug
        title: Item title
        date: Publication date
        author: Author name
        featured: Featured flag
        status: Publication status
        tags: Tag names
        categories: Category names
        image: Image descriptor, e.g. ``{"src": "/resources/a.png"}``
        excerpt: Short summary
        custom: Every other front matter field
    """

    slug: str
    title: str
    date: datetime
    author: Optional[str] = None
    featured: bool = False
    status: str = "published"
    tags: List[Any] = field(default_factory=list)
    categories: List[Any] = field(default_factory=list)
    image: Optional[Dict[str, Any]] = None
    excerpt: Optional[str] = None
    custom: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ItemMetadata":
        """Create from merged front matter and file data.

        Args:
            data: Field values

        Returns:
            ItemMetadata instance

        Raises:
            ValueError: If slug or title is missing, or the date is invalid
        """
        if not data.get("slug"):
            raise ValueError("Slug is required")
        if not data.get("title"):
            raise ValueError("Title is required")

        raw_date = data.get("date")
        item_date = datetime.now() if raw_date is None else parse_date(raw_date)

        image = data.get("image")
        if isinstance(image, str):
            image = {"src": image}
        elif not isinstance(image, dict):
            image = None

        custom = {k: v for k, v in data.items() if k not in STANDARD_FIELDS}

        return cls(
            slug=str(data["slug"]),
            title=str(data["title"]),
            date=item_date,
            author=data.get("author"),
            featured=bool(data.get("featured", False)),
            status=data.get("status") or "published",
            tags=_as_list(data.get("tags")),
            categories=_as_list(data.get("categories")),
            image=image,
            excerpt=data.get("excerpt"),
            custom=custom,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slug": self.slug,
            "title": self.title,
            "date": self.date.isoformat(),
            "author": self.author,
            "featured": self.featured,
            "status": self.status,
            "tags": list(self.tags),
            "categories": list(self.categories),
            "image": self.image,
            "excerpt": self.excerpt,
            "custom": dict(self.custom),
        }


class Item:
    """A content item loaded from a markdown file.

    Example:
        item = factory.create_from_file("/content/posts/2024-01-02-hello.md")
        item.slug()      # 'hello'
        item.tags()      # ['intro']
        item.meta("layout", "post")
    """

    def __init__(self, metadata: ItemMetadata, body: str, html_body: str = ""):
        self.metadata = metadata
        self._body = body
        self._html_body = html_body

    def slug(self) -> str:
        return self.metadata.slug

    def title(self) -> str:
        return self.metadata.title

    def author(self) -> Optional[str]:
        return self.metadata.author

    def featured(self) -> bool:
        return self.metadata.featured

    def status(self) -> str:
        return self.metadata.status

    def tags(self) -> List[Any]:
        return list(self.metadata.tags)

    def categories(self) -> List[Any]:
        return list(self.metadata.categories)

    def image(self) -> Optional[Dict[str, Any]]:
        return self.metadata.image

    def excerpt(self) -> Optional[str]:
        return self.metadata.excerpt

    def date(self) -> datetime:
        return self.metadata.date

    def body(self) -> str:
        """Rendered body, falling back to the raw body when not rendered."""
        return self._html_body or self._body

    def raw_body(self) -> str:
        return self._body

    def meta(self, key: str, default: Any = None) -> Any:
        """Get a custom front matter field."""
        return self.metadata.custom.get(key, default)

    def file(self) -> Optional[str]:
        return self.meta("filepath")

    def is_published(self) -> bool:
        return self.metadata.status == "published"

    def is_draft(self) -> bool:
        return self.metadata.status == "draft"

    def to_dict(self) -> Dict[str, Any]:
        data = self.metadata.to_dict()
        data["body"] = self.body()
        return data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self.metadata == other.metadata and self._body == other._body

    def __hash__(self) -> int:
        return hash((self.metadata.slug, self.meta("filepath")))

    def __repr__(self) -> str:
        return f"Item(slug={self.slug()!r}, title={self.title()!r})"


__all__ = ["Item", "ItemMetadata", "parse_date"]
