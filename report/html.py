"""
Minimal HTML element tree used to build meeting notes.

Serialization is deterministic: attributes keep insertion order and text and
attribute values are escaped, so the output is valid Confluence storage markup.
"""

from html import escape
from html.parser import HTMLParser
from typing import List, Optional, Tuple, Union

Child = Union["HTMLElement", str]

VOID_TAGS = {"br", "hr", "img", "input", "meta", "link", "col"}


class HTMLElement:
    """An element with ordered attributes and ordered children (elements or text)."""

    def __init__(self, tag: str):
        self.tag = tag
        self.attributes: List[Tuple[str, str]] = []
        self.children: List[Child] = []

    def add_attribute(self, name: str, value) -> "HTMLElement":
        """Set an attribute; a repeated name replaces the earlier value in place."""
        entry = (name, "" if value is None else str(value))
        for i, (existing, _) in enumerate(self.attributes):
            if existing == name:
                self.attributes[i] = entry
                return self
        self.attributes.append(entry)
        return self

    def add_child(self, child: Optional[Child]) -> "HTMLElement":
        if child is not None:
            self.children.append(child)
        return self

    def add_children(self, children) -> "HTMLElement":
        for child in children:
            self.add_child(child)
        return self

    def text(self) -> str:
        """Concatenated text content of this subtree."""
        return "".join(c if isinstance(c, str) else c.text() for c in self.children)

    def find_all(self, tag: str) -> List["HTMLElement"]:
        found = []
        for child in self.children:
            if isinstance(child, HTMLElement):
                if child.tag == tag:
                    found.append(child)
                found.extend(child.find_all(tag))
        return found

    def to_string(self) -> str:
        attrs = "".join(f' {name}="{escape(value, quote=True)}"' for name, value in self.attributes)
        if self.tag in VOID_TAGS and not self.children:
            return f"<{self.tag}{attrs} />"
        inner = "".join(escape(c, quote=False) if isinstance(c, str) else c.to_string() for c in self.children)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>"

    def __str__(self):
        return self.to_string()

    def __eq__(self, other):
        if not isinstance(other, HTMLElement):
            return NotImplemented
        return (self.tag, self.attributes, self.children) == (other.tag, other.attributes, other.children)

    def __repr__(self):
        return f"HTMLElement({self.tag!r}, children={len(self.children)})"

    @classmethod
    def parse(cls, markup: str) -> "HTMLElement":
        """Rebuild the tree for markup produced by to_string(). The markup must have one root."""
        builder = _TreeBuilder()
        builder.feed(markup)
        builder.close()
        if len(builder.roots) != 1:
            raise ValueError(f"expected a single root element, found {len(builder.roots)}")
        return builder.roots[0]


class _TreeBuilder(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.roots: List[HTMLElement] = []
        self.stack: List[HTMLElement] = []

    def _attach(self, node: Child):
        if self.stack:
            parent = self.stack[-1]
            # merge adjacent text, which the parser may deliver in pieces
            if isinstance(node, str) and parent.children and isinstance(parent.children[-1], str):
                parent.children[-1] += node
            else:
                parent.children.append(node)
        elif isinstance(node, HTMLElement):
            self.roots.append(node)

    def handle_starttag(self, tag, attrs):
        element = HTMLElement(tag)
        for name, value in attrs:
            element.add_attribute(name, value)
        self._attach(element)
        if tag not in VOID_TAGS:
            self.stack.append(element)

    def handle_startendtag(self, tag, attrs):
        element = HTMLElement(tag)
        for name, value in attrs:
            element.add_attribute(name, value)
        self._attach(element)

    def handle_endtag(self, tag):
        while self.stack:
            if self.stack.pop().tag == tag:
                break

    def handle_data(self, data):
        if data:
            self._attach(data)
