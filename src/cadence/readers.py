#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def load_json(path: str | Path):
    with open(path, "r") as f:
        data = json.load(f)
    return data


def load_rule_configs(path: str | Path) -> list[dict[str, Any]]:
    """Read recurrence rules in wire format from a JSON file. The file may hold
    a single rule or a list of rules."""
    data = load_json(path)
    if isinstance(data, dict):
        data = [data]
    logger.info(f"Loaded {len(data)} recurrence rule(s) from {path}")
    return data
