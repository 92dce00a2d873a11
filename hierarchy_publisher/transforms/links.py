"""Link transform factories for Hierarchy Publisher.

An href transform maps a note fname to the URL a destination links to.
"""

from typing import Callable

HrefTransform = Callable[[str], str]


def relative_href(extension: str = ".md") -> HrefTransform:
    """Create a transform producing relative file links.

    Args:
        extension: File extension to append (e.g. ".md", ".html")

    Returns:
        A transform function fname -> href
    """
    def transform(fname: str) -> str:
        return f"{fname}{extension}"
    return transform


def absolute_href(prefix: str = "", extension: str = "") -> HrefTransform:
    """Create a transform producing absolute site links.

    Args:
        prefix: URL prefix (e.g. "/notes")
        extension: Optional extension to append

    Returns:
        A transform function fname -> href
    """
    prefix = prefix.rstrip('/')

    def transform(fname: str) -> str:
        return f"{prefix}/{fname}{extension}"
    return transform


def markdown_link(text: str, href: str) -> str:
    """Render a markdown link."""
    return f"[{text}]({href})"
