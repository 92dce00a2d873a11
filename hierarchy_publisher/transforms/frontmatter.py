"""Frontmatter transform factories for Hierarchy Publisher.

These factories create transform functions applied to a note's custom
frontmatter while it is filtered for publishing.
"""

from typing import Any, Callable, Dict, List

from hierarchy_publisher.core.config import FrontmatterField, HierarchyConfig

FrontmatterTransform = Callable[[Dict[str, Any]], Dict[str, Any]]


def inject_fields(custom_frontmatter: List[FrontmatterField]) -> FrontmatterTransform:
    """Create a transform that sets every configured field, overwriting existing values."""
    def transform(fm: Dict[str, Any]) -> Dict[str, Any]:
        result = fm.copy()
        for entry in custom_frontmatter:
            result[entry.key] = entry.value
        return result
    return transform


def stamp_noindex(enabled: bool) -> FrontmatterTransform:
    """Create a transform that sets ``noindex: true`` unless the note already sets it."""
    def transform(fm: Dict[str, Any]) -> Dict[str, Any]:
        result = fm.copy()
        if enabled and "noindex" not in result:
            result["noindex"] = True
        return result
    return transform


def compose(*transforms: FrontmatterTransform) -> FrontmatterTransform:
    """Compose transforms, applied left to right."""
    def transform(fm: Dict[str, Any]) -> Dict[str, Any]:
        result = fm.copy()
        for t in transforms:
            result = t(result)
        return result
    return transform


def hierarchy_frontmatter(config: HierarchyConfig) -> FrontmatterTransform:
    """Create the transform a resolved hierarchy config applies to each note.

    Args:
        config: Fully resolved hierarchy config

    Returns:
        A transform injecting custom frontmatter and stamping noindex
    """
    return compose(
        inject_fields(config.custom_frontmatter or []),
        stamp_noindex(bool(config.noindex_by_default)),
    )
