#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Expand the recurrence rules of a config into their occurrences.

Example
-------
    cadence-generate 'rules=[{anchorDate: "2025-01-30", kind: monthly, endDate: "2025-06-30"}]'
"""
import logging
from pathlib import Path
from typing import Any

import hydra
from omegaconf import DictConfig, OmegaConf
from rich.console import Console
from rich.table import Table

from cadence.apps_implementation.exceptions import (
    ParseError,
    RecurrenceDefinitionError,
)
from cadence.apps_implementation.occurrences import recurrence_descriptor
from cadence.apps_implementation.recurrence import (
    Occurrence,
    RecurrenceRule,
    generate,
)
from cadence.apps_implementation.time_utils import format_date
from cadence.constants import (
    CONFIGS_ROOT,
    DATE_COL_WIDTH,
    RESOLVED_CONFIG_FILE_NAME,
    RESULTS_FILE_NAME,
)
from cadence.readers import load_rule_configs
from cadence.writers import save_json

logger = logging.getLogger(__name__)

Series = tuple[RecurrenceRule, tuple[Occurrence, ...]]


def collect_rule_configs(cfg: DictConfig) -> list[dict[str, Any]]:
    """Gather the rules listed in the config and those read from `rules_path`."""
    rule_configs = []
    if cfg.get("rules"):
        rule_configs.extend(OmegaConf.to_container(cfg.rules, resolve=True))
    if cfg.get("rules_path"):
        rule_configs.extend(load_rule_configs(cfg.rules_path))
    return rule_configs


def generate_series(rule_configs: list[dict[str, Any]]) -> list[Series]:
    series = []
    for i, rule_config in enumerate(rule_configs):
        try:
            rule = RecurrenceRule.from_config(rule_config)
        except (ParseError, RecurrenceDefinitionError) as e:
            logger.error(f"Invalid recurrence rule at position {i}: {e}")
            raise
        occurrences = generate(rule)
        logger.info(f"{rule.series_id}: {len(occurrences)} occurrence(s)")
        series.append((rule, occurrences))
    return series


def render_series(rule: RecurrenceRule, occurrences: tuple[Occurrence, ...]) -> Table:
    descriptor = recurrence_descriptor(occurrences[0])
    table = Table(
        title=f"{rule.series_id} ({descriptor.label}, every {rule.interval})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", style="dim")
    table.add_column("Date", width=DATE_COL_WIDTH)
    table.add_column("Weekday")
    table.add_column("Occurrence ID", style="white")
    for occurrence in occurrences:
        table.add_row(
            str(occurrence.sequence_index),
            format_date(occurrence.date),
            occurrence.date.strftime("%A"),
            occurrence.occurrence_id,
        )
    return table


def series_to_json(series: list[Series]) -> list[dict[str, Any]]:
    return [
        {
            "seriesId": rule.series_id,
            "occurrences": [occurrence.to_wire() for occurrence in occurrences],
        }
        for rule, occurrences in series
    ]


@hydra.main(config_name="generate_series", config_path=CONFIGS_ROOT, version_base=None)
def main(cfg: DictConfig):
    if cfg.debug:
        logger.info(OmegaConf.to_yaml(cfg, resolve=True))
    series = generate_series(collect_rule_configs(cfg))
    console = Console()
    for rule, occurrences in series:
        console.print(render_series(rule, occurrences))
    if cfg.out_dir:
        output_dir = Path(cfg.out_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        OmegaConf.save(config=cfg, f=output_dir / RESOLVED_CONFIG_FILE_NAME)
        results_path = output_dir / RESULTS_FILE_NAME
        save_json(series_to_json(series), results_path)
        logger.info(f"Results written to {results_path}")


if __name__ == "__main__":
    main()
