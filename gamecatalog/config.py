"""Configuration loading: optional JSON file with environment overrides."""
import json
import os
from typing import Dict, Optional

from .errors import ValidationError

DEFAULT_METADATA_PATH = os.path.join(
    os.path.expanduser('~'), 'Library', 'Application Support', 'MyHomeGames')

DEFAULTS = {
    'metadata_path': DEFAULT_METADATA_PATH,
    'api_token': None,
    'log_level': 'WARNING',
}


def load_config(config_path: Optional[str] = None) -> Dict:
    """Load configuration from a JSON file with environment variable support.

    Environment variables take precedence over config file values:

    - METADATA_PATH overrides metadata_path
    - API_TOKEN overrides api_token
    - CATALOG_LOG_LEVEL overrides log_level

    A missing file yields the defaults.

    Raises:
        ValidationError: If the file exists but is not a JSON object.
    """
    config = dict(DEFAULTS)
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Error parsing config file: {e}")
        if not isinstance(loaded, dict):
            raise ValidationError("Config file must contain a JSON object")
        config.update(loaded)

    if os.getenv('METADATA_PATH'):
        config['metadata_path'] = os.getenv('METADATA_PATH')
    if os.getenv('API_TOKEN'):
        config['api_token'] = os.getenv('API_TOKEN')
    if os.getenv('CATALOG_LOG_LEVEL'):
        config['log_level'] = os.getenv('CATALOG_LOG_LEVEL')

    config['metadata_path'] = os.path.expanduser(config['metadata_path'])
    return config
