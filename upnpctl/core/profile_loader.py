"""Named invocation profiles stored as YAML files.

A profile lives in ``<id>.yaml`` (or ``.yml``). Lookup order is
``$XDG_CONFIG_HOME/upnpctl/profiles``, ``$XDG_DATA_HOME/upnpctl/profiles`` and
then the profiles shipped in :mod:`upnpctl.profiles`. Only the file for the
requested id is read.
"""

from __future__ import annotations

import functools
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
from jsonschema import validators
from jsonschema.exceptions import best_match
from yaml.constructor import ConstructorError

from upnpctl.core.errors import ProfileLoadError, ProfileValidationError
from upnpctl.core.model import FilterCriteria, Profile

LOGGER = logging.getLogger(__name__)

PROFILE_SUFFIXES = (".yaml", ".yml")
_PROFILE_ID = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]*")


class ProfileYamlLoader(yaml.SafeLoader):
    """Safe loader that keeps boolean and float scalars as written and rejects duplicate keys."""


def _scalar_text(loader: ProfileYamlLoader, node: yaml.ScalarNode) -> str:
    return loader.construct_scalar(node)


def _construct_unique_mapping(loader: ProfileYamlLoader, node: yaml.MappingNode) -> dict[Any, Any]:
    pairs = loader.construct_pairs(node, deep=True)
    seen: set[Any] = set()
    for (key_node, _), (key, _) in zip(node.value, pairs):
        if key in seen:
            raise ConstructorError(
                "while constructing a mapping",
                node.start_mark,
                f"found duplicate key {key!r}",
                key_node.start_mark,
            )
        seen.add(key)
    return dict(pairs)


# Argument values are UPnP text: "yes" and "0.50" must reach coercion unchanged.
ProfileYamlLoader.add_constructor("tag:yaml.org,2002:bool", _scalar_text)
ProfileYamlLoader.add_constructor("tag:yaml.org,2002:float", _scalar_text)
ProfileYamlLoader.add_constructor(yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_unique_mapping)


@dataclass(frozen=True)
class ResolvedProfile:
    profile: Profile
    source: str
    warnings: tuple[str, ...] = ()


@functools.cache
def _schema_validator() -> Any:
    schema = json.loads(
        resources.files("upnpctl.schemas").joinpath("profile.schema.json").read_text(encoding="utf-8")
    )
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_profile_dirs() -> tuple[Path, ...]:
    config_home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    data_home = Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")
    return (config_home / "upnpctl" / "profiles", data_home / "upnpctl" / "profiles")


def _profile_roots() -> list[Path | Traversable]:
    roots: list[Path | Traversable] = [d for d in user_profile_dirs() if d.is_dir()]
    roots.append(resources.files("upnpctl.profiles"))
    return roots


def _profile_file(root: Path | Traversable, profile_id: str) -> Path | Traversable | None:
    for suffix in PROFILE_SUFFIXES:
        candidate = root.joinpath(profile_id + suffix)
        if candidate.is_file():
            return candidate
    return None


def available_profile_ids() -> list[str]:
    ids: set[str] = set()
    for root in _profile_roots():
        for item in root.iterdir():
            stem, dot, suffix = item.name.rpartition(".")
            if dot and f".{suffix}" in PROFILE_SUFFIXES and _PROFILE_ID.fullmatch(stem):
                ids.add(stem)
    return sorted(ids)


def _text_pairs(doc: dict[str, Any], key: str) -> tuple[tuple[str, str], ...]:
    return tuple((str(name), str(value)) for name, value in doc.get(key, {}).items())


def parse_profile(source: Path | Traversable, profile_id: str) -> Profile:
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileLoadError(f"Could not read profile {source}: {exc}") from exc
    try:
        doc = yaml.load(text, Loader=ProfileYamlLoader)
    except yaml.YAMLError as exc:
        raise ProfileValidationError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(doc, dict):
        raise ProfileValidationError(f"{source}: expected a mapping of profile settings")

    error = best_match(_schema_validator().iter_errors(doc))
    if error is not None:
        location = "/".join(str(part) for part in error.absolute_path)
        at = f" at '{location}'" if location else ""
        raise ProfileValidationError(f"{source}{at}: {error.message}")

    declared_id = doc.get("id", profile_id)
    if declared_id != profile_id:
        raise ProfileValidationError(
            f"{source}: id '{declared_id}' does not match file name '{profile_id}'"
        )

    device = doc.get("device", {})
    service = doc["service"]
    discovery = doc.get("discovery", {})
    return Profile(
        id=profile_id,
        description=doc.get("description", ""),
        criteria=FilterCriteria(
            device_udn=device.get("udn"),
            device_urn=device.get("urn"),
            device_friendly_name=device.get("friendly_name"),
            service_id=service.get("id"),
            service_urn=service.get("urn"),
        ),
        action=doc.get("action"),
        set_vars=_text_pairs(doc, "set"),
        get_vars=tuple(str(name) for name in doc.get("get", [])),
        expect_vars=_text_pairs(doc, "expect"),
        timeout_ms=discovery.get("timeout_ms"),
        rescan_ms=discovery.get("rescan_ms"),
    )


def resolve_profile(profile_id: str) -> ResolvedProfile:
    """Find and parse the profile named `profile_id`; user files shadow packaged ones."""
    if not _PROFILE_ID.fullmatch(profile_id):
        raise ProfileLoadError(f"Invalid profile name '{profile_id}'")

    packaged = _profile_file(resources.files("upnpctl.profiles"), profile_id)
    for directory in user_profile_dirs():
        path = _profile_file(directory, profile_id) if directory.is_dir() else None
        if path is None:
            continue
        warnings: tuple[str, ...] = ()
        if packaged is not None:
            warning = f"User profile '{profile_id}' overrides packaged profile"
            LOGGER.warning(warning)
            warnings = (warning,)
        return ResolvedProfile(parse_profile(path, profile_id), str(path), warnings)

    if packaged is None:
        available = ", ".join(available_profile_ids()) or "<none>"
        raise ProfileLoadError(f"Unknown profile '{profile_id}'. Available: {available}")
    LOGGER.debug("Using packaged profile %s", profile_id)
    return ResolvedProfile(parse_profile(packaged, profile_id), str(packaged))
