"""Tests for property accessors."""

from dataclasses import dataclass
from datetime import datetime

import pytest
from pydantic import BaseModel

from sqlhooks import PropertyAccessor, accessor_for, register_accessor
from sqlhooks.properties import Property, clear_accessors


@pytest.fixture(autouse=True)
def cleanup():
    """Drop cached accessors between tests."""
    yield
    clear_accessors()


@dataclass
class Article:
    title: str
    published: datetime | None = None


class Comment(BaseModel):
    body: str
    score: int = 0


class Plain:
    author: str
    _secret: str

    def __init__(self, author: str) -> None:
        self.author = author


class TestFromType:
    """Test deriving property tables from types."""

    def test_dataclass(self):
        accessor = PropertyAccessor.from_type(Article)
        assert accessor.names() == ["title", "published"]
        assert accessor.find("published").annotation == datetime | None

    def test_pydantic_model(self):
        accessor = PropertyAccessor.from_type(Comment)
        comment = Comment(body="hi")

        accessor.set(comment, "score", 3)
        assert accessor.get(comment, "score") == 3
        assert accessor.names() == ["body", "score"]

    def test_annotated_class_skips_private(self):
        accessor = PropertyAccessor.from_type(Plain)
        assert accessor.names() == ["author"]
        assert accessor.get(Plain("moyo"), "author") == "moyo"

    def test_unknown_property(self):
        accessor = PropertyAccessor.from_type(Article)
        assert accessor.find("body") is None
        assert "body" not in accessor
        with pytest.raises(KeyError):
            accessor.get(Article("x"), "body")


class TestRegistry:
    """Test the accessor cache."""

    def test_accessor_is_cached(self):
        assert accessor_for(Article) is accessor_for(Article)

    def test_registered_accessor_wins(self):
        """An explicit table replaces the derived one."""
        upper = Property(
            name="title",
            annotation=str,
            getter=lambda obj: obj.title.upper(),
            setter=lambda obj, value: setattr(obj, "title", value),
        )
        register_accessor(PropertyAccessor(Article, {"title": upper}))

        accessor = accessor_for(Article)
        assert accessor.names() == ["title"]
        assert accessor.get(Article("draft"), "title") == "DRAFT"
