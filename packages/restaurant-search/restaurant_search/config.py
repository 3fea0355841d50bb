# Copyright 2025 Google LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Configuration module for the search client.
"""

import os
from dotenv import load_dotenv

from .data_models.settings import SearchSettings

# Environment variable names
RS_API_BASE_URL_ENV = "RS_API_BASE_URL"
RS_API_PASSCODE_ENV = "RS_API_PASSCODE"
RS_SEARCH_PATH_ENV = "RS_SEARCH_PATH"
RS_PAGE_SIZE_ENV = "RS_PAGE_SIZE"
RS_TIMEOUT_SECONDS_ENV = "RS_TIMEOUT_SECONDS"
RS_DEFAULT_DISTRICTS_ENV = "RS_DEFAULT_DISTRICTS"


def _load_env_file() -> None:
    """Load .env file if present in the current directory."""
    load_dotenv()


def _parse_csv(value: str) -> list[str] | None:
    """
    Parse a comma-separated value into a list of strings.

    Args:
        value: The comma-separated value to parse

    Returns:
        List of strings if value is not empty, None otherwise
    """
    if not value or not value.strip():
        return None

    # Split by comma and strip whitespace from each item
    items = [item.strip() for item in value.split(",")]
    # Filter out empty items
    return [item for item in items if item] or None


def get_search_config() -> SearchSettings:
    """
    Get search configuration from environment variables.

    Returns:
        SearchSettings object containing the configuration

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    _load_env_file()

    api_base_url = os.getenv(RS_API_BASE_URL_ENV)
    if not api_base_url:
        raise ValueError(f"{RS_API_BASE_URL_ENV} environment variable is required")

    # Build config data, only including fields that are provided
    config_data = {"api_base_url": api_base_url}

    optional = {
        "api_passcode": os.getenv(RS_API_PASSCODE_ENV),
        "search_path": os.getenv(RS_SEARCH_PATH_ENV),
        "page_size": os.getenv(RS_PAGE_SIZE_ENV),
        "timeout_seconds": os.getenv(RS_TIMEOUT_SECONDS_ENV),
    }
    config_data.update({key: value for key, value in optional.items() if value})

    default_districts = _parse_csv(os.getenv(RS_DEFAULT_DISTRICTS_ENV, ""))
    if default_districts:
        config_data["default_districts"] = default_districts

    return SearchSettings.model_validate(config_data)
