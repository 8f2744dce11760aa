"""Load and validate inventory files (YAML or JSON)."""

import json
import os
from typing import List

import yaml

from versiongate.models import ApiEntry, Inventory, Project, Settings


class InventoryValidationError(Exception):
    """Raised when an inventory file fails validation."""


def load_inventory(path: str) -> Inventory:
    """Load an inventory of projects and tracked APIs from a YAML or JSON file.

    Args:
        path: Path to the inventory file.

    Returns:
        A validated Inventory instance.

    Raises:
        InventoryValidationError: If the file is missing, unreadable, or invalid.
    """
    if not os.path.isfile(path):
        raise InventoryValidationError(f"inventory file not found: {path}")

    ext = os.path.splitext(path)[1].lower()
    try:
        with open(path, "r") as f:
            if ext in (".yaml", ".yml"):
                raw = yaml.safe_load(f)
            elif ext == ".json":
                raw = json.load(f)
            else:
                raise InventoryValidationError(
                    f"unsupported file extension: {ext} (expected .yaml, .yml, or .json)"
                )
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise InventoryValidationError(f"failed to parse {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise InventoryValidationError("inventory must be a mapping/object at the top level")

    return build_inventory(raw)


def build_inventory(raw: dict) -> Inventory:
    """Construct and validate an Inventory from a raw dict."""
    errors: List[str] = []

    projects = _parse_projects(raw.get("projects", []), errors)
    apis = _parse_apis(raw.get("apis", []), errors)
    settings = _parse_settings(raw.get("settings"), errors)

    known = {p.id for p in projects}
    for i, api in enumerate(apis):
        if projects and api.project_id not in known:
            errors.append(f"apis[{i}].projectId {api.project_id} does not match any project")

    if errors:
        raise InventoryValidationError(
            "inventory validation failed:\n  - " + "\n  - ".join(errors)
        )

    return Inventory(projects=projects, apis=apis, settings=settings)


def _parse_projects(raw, errors: List[str]) -> List[Project]:
    if not isinstance(raw, list):
        errors.append("'projects' must be a list")
        return []
    projects = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            errors.append(f"projects[{i}] must be a mapping")
            continue
        pid = item.get("id")
        name = item.get("name")
        if not isinstance(pid, int) or isinstance(pid, bool):
            errors.append(f"projects[{i}].id is required and must be an integer")
            continue
        if not name or not isinstance(name, str):
            errors.append(f"projects[{i}].name is required and must be a non-empty string")
            continue
        projects.append(Project(id=pid, name=name))
    return projects


def _parse_apis(raw, errors: List[str]) -> List[ApiEntry]:
    if not isinstance(raw, list):
        errors.append("'apis' must be a list")
        return []
    apis = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            errors.append(f"apis[{i}] must be a mapping")
            continue
        api_id = item.get("id", i + 1)
        project_id = item.get("projectId", item.get("project_id"))
        url = item.get("url")
        environment = item.get("environment")
        region = item.get("region") or "unknown"

        if not isinstance(api_id, int) or isinstance(api_id, bool):
            errors.append(f"apis[{i}].id must be an integer")
            continue
        if not isinstance(project_id, int) or isinstance(project_id, bool):
            errors.append(f"apis[{i}].projectId is required and must be an integer")
            continue
        if not url or not isinstance(url, str):
            errors.append(f"apis[{i}].url is required and must be a non-empty string")
            continue
        if not environment or not isinstance(environment, str):
            errors.append(f"apis[{i}].environment is required and must be a non-empty string")
            continue
        apis.append(ApiEntry(
            id=api_id,
            project_id=project_id,
            url=url,
            environment=environment,
            region=str(region),
        ))
    return apis


def _parse_settings(raw, errors: List[str]) -> Settings:
    if raw is None:
        return Settings()
    if not isinstance(raw, dict):
        errors.append("'settings' must be a mapping")
        return Settings()

    defaults = Settings()
    timeout_ms = raw.get("timeout_ms", defaults.timeout_ms)
    interval = raw.get("poll_interval_s", defaults.poll_interval_s)
    concurrency = raw.get("max_concurrency", defaults.max_concurrency)

    if not isinstance(timeout_ms, int) or isinstance(timeout_ms, bool) or timeout_ms <= 0:
        errors.append("'settings.timeout_ms' must be a positive integer")
        timeout_ms = defaults.timeout_ms
    if not isinstance(interval, (int, float)) or isinstance(interval, bool) or interval <= 0:
        errors.append("'settings.poll_interval_s' must be a positive number")
        interval = defaults.poll_interval_s
    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency <= 0:
        errors.append("'settings.max_concurrency' must be a positive integer")
        concurrency = defaults.max_concurrency

    return Settings(
        timeout_ms=timeout_ms,
        poll_interval_s=float(interval),
        max_concurrency=concurrency,
    )
