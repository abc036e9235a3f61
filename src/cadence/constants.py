#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
PACKAGE_NAME = "cadence"
CONFIGS_ROOT = f"pkg://{PACKAGE_NAME}.configs"
RESULTS_FILE_NAME = "occurrences.json"
RESOLVED_CONFIG_FILE_NAME = "config.yaml"
DATE_COL_WIDTH = 12
