"""Read a learning-path catalog from a JSON file."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from patissier.catalog.models import LearningPath
from patissier.core.errors import InvalidInputError

_PATHS_ADAPTER = TypeAdapter(list[LearningPath])


def parse_catalog(payload: object) -> list[LearningPath]:
    """
    Validate catalog data.

    Accepts either a bare list of paths or an object with a ``paths`` list
    (the shape served by the content API).

    Raises:
        InvalidInputError: If the payload does not describe learning paths
    """
    if isinstance(payload, dict):
        payload = payload.get("paths", payload.get("data"))
    if not isinstance(payload, list):
        raise InvalidInputError("Catalog must be a list of learning paths")
    try:
        return _PATHS_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid catalog: {e.error_count()} validation errors") from e


def load_catalog(catalog_file: Path) -> list[LearningPath]:
    """
    Load and validate a catalog JSON file.

    Args:
        catalog_file: Path to the JSON catalog

    Returns:
        Learning paths in file order

    Raises:
        InvalidInputError: If the file is missing, not JSON, or not a catalog
    """
    if not catalog_file.exists():
        raise InvalidInputError(f"Catalog file not found: {catalog_file}")

    try:
        payload = json.loads(catalog_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Catalog file is not valid JSON: {e}") from e

    paths = parse_catalog(payload)
    logger.debug(f"Loaded {len(paths)} learning paths from {catalog_file}")
    return paths
