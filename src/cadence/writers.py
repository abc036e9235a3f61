#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import json
from pathlib import Path
from typing import Any


def save_json(data: Any, path: str | Path, indent: int = 4):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent)
