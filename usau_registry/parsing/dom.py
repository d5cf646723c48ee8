# usau_registry/parsing/dom.py
"""Typed element queries over a parsed HTML tree.

Extractors locate markup through :class:`Document` and :class:`Element`
(tag names, required classes, attribute predicates) instead of string
selectors, so the parser behind them can change without touching the
extraction rules. The tree itself is built by BeautifulSoup with lxml.
"""

from typing import Callable, Iterator, List, Mapping, Optional, Sequence, Union

from bs4 import BeautifulSoup, Tag

# An attribute filter is either an exact value, True (attribute present) or
# a predicate on the attribute value (None when the attribute is absent).
AttrFilter = Union[str, bool, Callable[[Optional[str]], bool]]
TagNames = Union[str, Sequence[str], None]


def attr_contains(substring: str) -> Callable[[Optional[str]], bool]:
    return lambda value: value is not None and substring in value


def attr_startswith(prefix: str) -> Callable[[Optional[str]], bool]:
    return lambda value: value is not None and value.startswith(prefix)


class Element:
    """Handle on a single element of a parsed document."""

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag):
        self._tag = tag

    def __repr__(self) -> str:
        return f"<Element {self.name} classes={self.classes}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self._tag is other._tag

    def __hash__(self) -> int:
        return id(self._tag)

    @property
    def name(self) -> str:
        return self._tag.name

    @property
    def text(self) -> str:
        """Concatenated descendant text, stripped at both ends."""
        return self._tag.get_text().strip()

    @property
    def classes(self) -> List[str]:
        return list(self._tag.get("class") or [])

    def attr(self, name: str, default: str = "") -> str:
        value = self._tag.get(name)
        if value is None:
            return default
        if isinstance(value, list):  # multi-valued attributes such as class
            return " ".join(value)
        return value

    def has_class(self, class_name: str) -> bool:
        return class_name in self.classes

    @property
    def parent(self) -> Optional["Element"]:
        parent = self._tag.parent
        if parent is None or not isinstance(parent, Tag):
            return None
        return Element(parent)

    def closest(self, tag_name: str) -> Optional["Element"]:
        """The element itself or its nearest ancestor named ``tag_name``."""
        if self.name == tag_name:
            return self
        parent = self._tag.find_parent(tag_name)
        return Element(parent) if parent is not None else None

    def previous_element_sibling(self) -> Optional["Element"]:
        sibling = self._tag.find_previous_sibling()
        return Element(sibling) if sibling is not None else None

    def iter_all(
        self,
        tags: TagNames = None,
        *,
        classes: Sequence[str] = (),
        attrs: Optional[Mapping[str, AttrFilter]] = None,
        where: Optional[Callable[["Element"], bool]] = None,
    ) -> Iterator["Element"]:
        """Yield matching descendants in document order."""
        names = [tags] if isinstance(tags, str) else (list(tags) if tags else True)
        for tag in self._tag.find_all(names):
            element = Element(tag)
            if classes and not all(element.has_class(c) for c in classes):
                continue
            if attrs and not element._matches_attrs(attrs):
                continue
            if where is not None and not where(element):
                continue
            yield element

    def find_all(self, tags: TagNames = None, **filters) -> List["Element"]:
        return list(self.iter_all(tags, **filters))

    def find(self, tags: TagNames = None, **filters) -> Optional["Element"]:
        return next(self.iter_all(tags, **filters), None)

    def find_text(self, tags: TagNames = None, **filters) -> str:
        """Text of the first match, or an empty string."""
        element = self.find(tags, **filters)
        return element.text if element is not None else ""

    def _matches_attrs(self, attrs: Mapping[str, AttrFilter]) -> bool:
        for name, expected in attrs.items():
            raw = self._tag.get(name)
            value = " ".join(raw) if isinstance(raw, list) else raw
            if expected is True:
                if value is None:
                    return False
            elif callable(expected):
                if not expected(value):
                    return False
            elif value != expected:
                return False
        return True


class Document(Element):
    """A parsed HTML page."""

    __slots__ = ("size",)

    def __init__(self, html: str):
        super().__init__(BeautifulSoup(html or "", "lxml"))
        self.size = len(html or "")

    @property
    def title(self) -> str:
        return self.find_text("title")

    @property
    def body_text(self) -> str:
        """Visible page text with a space at every element boundary.

        Adjacent elements never run together, so "of 50" followed by a
        pager link "2" reads "of 50 2" rather than "of 502".
        """
        root = self._tag.find("body") or self._tag
        return " ".join(root.get_text(" ").split())
