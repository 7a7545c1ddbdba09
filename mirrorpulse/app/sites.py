import json
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .models import Site, SiteConfig, SiteConfigError


def _parse_site(raw: Any, index: int) -> Site:
    if not isinstance(raw, dict):
        raise SiteConfigError(f"sites[{index}] must be a mapping, got {type(raw).__name__}")
    missing = [k for k in ("name", "url", "group") if not raw.get(k)]
    if missing:
        raise SiteConfigError(f"sites[{index}] is missing {', '.join(missing)}")
    is_mirror = raw.get("isMirror", False)
    if not isinstance(is_mirror, bool):
        raise SiteConfigError(f"sites[{index}].isMirror must be true or false, got {is_mirror!r}")
    return Site(name=str(raw["name"]),
                url=str(raw["url"]),
                group=str(raw["group"]),
                is_mirror=is_mirror)


def parse_site_config(data: Any) -> SiteConfig:
    """Validate a decoded ``{"sites": [...], "groupDescriptions": {...}}`` document."""
    if not isinstance(data, dict):
        raise SiteConfigError("site config must be a mapping with a 'sites' list")
    raw_sites = data.get("sites")
    if not isinstance(raw_sites, list):
        raise SiteConfigError("site config needs a 'sites' list")
    descriptions = data.get("groupDescriptions") or {}
    if not isinstance(descriptions, dict):
        raise SiteConfigError("'groupDescriptions' must map group titles to text")

    sites: List[Site] = []
    seen: Dict[str, str] = {}
    for i, raw in enumerate(raw_sites):
        site = _parse_site(raw, i)
        if site.url in seen:
            raise SiteConfigError(f"duplicate url {site.url} ({seen[site.url]!r} and {site.name!r})")
        seen[site.url] = site.name
        sites.append(site)

    return SiteConfig(sites=tuple(sites),
                      group_descriptions={str(k): str(v) for k, v in descriptions.items()})


def load_site_config(path: str | Path) -> SiteConfig:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise SiteConfigError(f"cannot read site config {p}: {e}") from e
    try:
        if p.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SiteConfigError(f"cannot parse site config {p}: {e}") from e
    return parse_site_config(data)
