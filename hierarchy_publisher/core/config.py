"""Site configuration for hierarchy publishing.

Per-hierarchy settings resolve field by field: the domain's own entry,
then the ``root`` entry, then fixed defaults.
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml

from hierarchy_publisher.core.models import SiteConfigError, Vault

ROOT_HIERARCHY = "root"


@dataclass(frozen=True)
class FrontmatterField:
    """A frontmatter key/value injected into every published note of a hierarchy."""
    key: str
    value: Any


@dataclass(frozen=True)
class HierarchyConfig:
    """Publish rules for one hierarchy.

    Fields left as None are unset and take the value of the next entry in
    the resolution chain.
    """
    publish_by_default: Optional[bool] = None
    noindex_by_default: Optional[bool] = None
    custom_frontmatter: Optional[List[FrontmatterField]] = None
    skip_levels: Optional[int] = None

    def merged_with(self, fallback: "HierarchyConfig") -> "HierarchyConfig":
        """Fill unset fields from ``fallback``."""
        changes = {
            f.name: getattr(fallback, f.name)
            for f in fields(self)
            if getattr(self, f.name) is None
        }
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HierarchyConfig":
        """Parse a hierarchy entry using the camelCase config keys.

        Raises:
            SiteConfigError: If a field has the wrong shape
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise SiteConfigError(f"Hierarchy config must be a mapping, got {type(data).__name__}")

        custom = data.get("customFrontmatter")
        if custom is not None:
            if not isinstance(custom, list):
                raise SiteConfigError("customFrontmatter must be a list of {key, value} entries")
            parsed = []
            for entry in custom:
                if not isinstance(entry, dict) or "key" not in entry:
                    raise SiteConfigError(f"Invalid customFrontmatter entry: {entry!r}")
                parsed.append(FrontmatterField(key=str(entry["key"]), value=entry.get("value")))
            custom = parsed

        skip_levels = data.get("skipLevels")
        if skip_levels is not None:
            if isinstance(skip_levels, bool) or not isinstance(skip_levels, int) or skip_levels < 0:
                raise SiteConfigError(f"skipLevels must be a non-negative integer, got {skip_levels!r}")

        return cls(
            publish_by_default=_optional_bool(data, "publishByDefault"),
            noindex_by_default=_optional_bool(data, "noindexByDefault"),
            custom_frontmatter=custom,
            skip_levels=skip_levels,
        )


DEFAULT_HIERARCHY_CONFIG = HierarchyConfig(
    publish_by_default=True,
    noindex_by_default=False,
    custom_frontmatter=[],
    skip_levels=0,
)


@dataclass(frozen=True)
class DuplicateNoteBehavior:
    """Pins the vault whose note wins when a domain exists in several vaults."""
    vault: str

    def matches(self, vault: Vault) -> bool:
        return vault.matches(self.vault)

    @classmethod
    def from_dict(cls, data: Any) -> "DuplicateNoteBehavior":
        """Accept ``{vault: name}`` or ``{action, payload: {vault: {fsPath|name}}}``."""
        if isinstance(data, dict):
            vault = data.get("vault")
            if vault is None and isinstance(data.get("payload"), dict):
                vault = data["payload"].get("vault")
            if isinstance(vault, dict):
                vault = vault.get("name") or vault.get("fsPath")
            if isinstance(vault, str) and vault:
                return cls(vault=vault)
        raise SiteConfigError(f"Invalid duplicateNoteBehavior: {data!r}")


@dataclass
class SiteConfig:
    """Which hierarchies to publish and how."""
    site_hierarchies: List[str] = field(default_factory=lambda: [ROOT_HIERARCHY])
    hierarchies: Dict[str, HierarchyConfig] = field(default_factory=dict)
    duplicate_note_behavior: Optional[DuplicateNoteBehavior] = None
    site_index: Optional[str] = None
    write_stubs: bool = False

    def __post_init__(self):
        if self.site_index is None and self.site_hierarchies:
            self.site_index = self.site_hierarchies[0]

    def config_for_hierarchy(self, domain: str) -> HierarchyConfig:
        """Resolve the effective config for a domain.

        Args:
            domain: Domain name (top-level hierarchy)

        Returns:
            HierarchyConfig with every field set
        """
        own = self.hierarchies.get(domain, HierarchyConfig())
        root = self.hierarchies.get(ROOT_HIERARCHY, HierarchyConfig())
        return own.merged_with(root).merged_with(DEFAULT_HIERARCHY_CONFIG)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteConfig":
        """Build a SiteConfig from camelCase config keys.

        Raises:
            SiteConfigError: If the configuration is malformed
        """
        if not isinstance(data, dict):
            raise SiteConfigError("Site config must be a mapping")

        site_hierarchies = data.get("siteHierarchies", [ROOT_HIERARCHY])
        if not isinstance(site_hierarchies, list) or not all(isinstance(h, str) for h in site_hierarchies):
            raise SiteConfigError("siteHierarchies must be a list of domain names")

        raw_hierarchies = data.get("config") or {}
        if not isinstance(raw_hierarchies, dict):
            raise SiteConfigError("config must map domain names to hierarchy configs")
        hierarchies = {
            str(name): HierarchyConfig.from_dict(entry)
            for name, entry in raw_hierarchies.items()
        }

        dup = data.get("duplicateNoteBehavior")
        return cls(
            site_hierarchies=list(site_hierarchies),
            hierarchies=hierarchies,
            duplicate_note_behavior=DuplicateNoteBehavior.from_dict(dup) if dup is not None else None,
            site_index=data.get("siteIndex"),
            write_stubs=_optional_bool(data, "writeStubs") or False,
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "SiteConfig":
        """Load a SiteConfig from a YAML file.

        The settings may sit at the top level or under a ``site`` key.
        """
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise SiteConfigError(f"Failed to parse YAML in {path.name}: {e}") from e

        if isinstance(data, dict) and isinstance(data.get("site"), dict):
            data = data["site"]
        return cls.from_dict(data)


def _optional_bool(data: Dict[str, Any], key: str) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise SiteConfigError(f"{key} must be a boolean, got {value!r}")
    return value
