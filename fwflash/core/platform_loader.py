"""Platform segment table loading and validation for YAML-based platform files."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from fwflash.core.errors import PlatformLoadError, PlatformValidationError
from fwflash.core.model import PlatformSpec, SegmentSpec, format_address

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{1,8}$")
_DFU_ID_RE = re.compile(r"^[0-9a-f]{4}:[0-9a-f]{4}$")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise PlatformValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedPlatforms:
    platforms: dict[str, PlatformSpec]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("fwflash").joinpath("schemas", "platform.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _platform_dirs() -> tuple[Path, ...]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return (xdg_config / "fwflash/platforms",)


def known_app_dir() -> Path:
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_data / "fwflash/apps"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PlatformLoadError(f"Could not read platform file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise PlatformValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise PlatformValidationError(f"Platform file {path} must contain a mapping at root")
    return loaded


def _normalize_address(value: Any, *, context: str) -> str:
    if isinstance(value, int):
        return format_address(value)
    normalized = str(value).strip().lower()
    if not _ADDRESS_RE.match(normalized):
        raise PlatformValidationError(f"{context} must be a 32-bit hex address like 0x080A0000")
    return format_address(int(normalized, 16))


def _normalize_dfu_id(value: str, *, context: str) -> str:
    normalized = value.strip().lower()
    if not _DFU_ID_RE.match(normalized):
        raise PlatformValidationError(f"{context} must look like 'vvvv:pppp'")
    return normalized


def _build_platform(doc: dict[str, Any], source: Path | Traversable) -> PlatformSpec:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise PlatformValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    segments: dict[str, SegmentSpec] = {}
    for segment_name, segment_spec in doc["segments"].items():
        address = _normalize_address(
            segment_spec["address"],
            context=f"{doc['id']}.segments.{segment_name}.address",
        )
        segments[segment_name] = SegmentSpec(name=segment_name, address=address)

    return PlatformSpec(
        id=doc["id"],
        name=doc["name"],
        product_id=int(doc["product_id"]),
        dfu_id=_normalize_dfu_id(doc["dfu_id"], context=f"{doc['id']}.dfu_id"),
        segments=segments,
        known_apps={str(k): str(v) for k, v in doc.get("known_apps", {}).items()},
    )


def _iter_packaged_platform_paths() -> list[Traversable]:
    platform_root = resources.files("fwflash").joinpath("platforms")
    return [item for item in platform_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_platform_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _platform_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def _check_unique_dfu_ids(platforms: dict[str, PlatformSpec]) -> None:
    seen: dict[str, str] = {}
    for platform in platforms.values():
        other = seen.get(platform.dfu_id)
        if other is not None:
            raise PlatformValidationError(
                f"Platforms '{other}' and '{platform.id}' share DFU id {platform.dfu_id}"
            )
        seen[platform.dfu_id] = platform.id


def load_platforms() -> LoadedPlatforms:
    platforms: dict[str, PlatformSpec] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_platform_paths(), key=lambda p: p.name):
        doc = _read_yaml(path)
        platform = _build_platform(doc, path)
        platforms[platform.id] = platform

    for path in _iter_user_platform_paths():
        doc = _read_yaml(path)
        platform = _build_platform(doc, path)
        if platform.id in platforms:
            warning = f"User platform '{platform.id}' overrides packaged platform"
            LOGGER.warning(warning)
            warnings.append(warning)
        platforms[platform.id] = platform

    _check_unique_dfu_ids(platforms)
    return LoadedPlatforms(platforms=platforms, warnings=tuple(warnings))


def known_app(platform: PlatformSpec, name: str) -> Path | None:
    """Return the binary registered under ``name`` for ``platform``, if present on disk."""
    filename = platform.known_apps.get(name)
    if filename is None:
        return None
    candidate = Path(filename)
    if not candidate.is_absolute():
        candidate = known_app_dir() / platform.id / candidate
    if not candidate.is_file():
        LOGGER.warning("Known app '%s' for %s is missing at %s", name, platform.id, candidate)
        return None
    return candidate
