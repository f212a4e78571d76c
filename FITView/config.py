# Copyright 2019 Joan Puig
# See LICENSE for details


import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional, Tuple

from FITView.state import ConfigStore


logger = logging.getLogger(__name__)


CONFIG_DIR_ENVIRONMENT_VARIABLE = 'FITVIEW_CONFIG_DIR'
DEFAULT_CONFIG_NAME = 'settings'


class ConfigStoreError(Exception):
    pass


def default_config_dir() -> str:
    configured = os.environ.get(CONFIG_DIR_ENVIRONMENT_VARIABLE)
    if configured:
        return configured
    return os.path.join(os.path.expanduser('~'), '.config', 'fitview')


class JsonConfigStore(ConfigStore):
    """
    Flat key-value store persisted as a single JSON object in <config_dir>/<name>.json

    The file is read on first access and rewritten atomically on every change
    """
    name: str
    config_dir: str
    _values: Optional[Dict[str, Any]]

    def __init__(self, name: str = DEFAULT_CONFIG_NAME, config_dir: Optional[str] = None):
        self.name = name
        self.config_dir = config_dir if config_dir is not None else default_config_dir()
        self._values = None

    @property
    def path(self) -> str:
        return os.path.join(self.config_dir, self.name + '.json')

    def _load(self) -> Dict[str, Any]:
        if self._values is not None:
            return self._values

        if not os.path.exists(self.path):
            self._values = {}
            return self._values

        try:
            with open(self.path, 'r', encoding='utf-8') as file:
                values = json.load(file)
        except (OSError, ValueError) as error:
            raise ConfigStoreError('Unable to read config file {}: {}'.format(self.path, error)) from error

        if not isinstance(values, dict):
            raise ConfigStoreError('Config file {} does not contain a JSON object'.format(self.path))

        self._values = values
        return self._values

    def _save(self, values: Dict[str, Any]) -> None:
        os.makedirs(self.config_dir, exist_ok=True)
        descriptor, temp_path = tempfile.mkstemp(prefix=self.name + '.', suffix='.tmp', dir=self.config_dir)
        try:
            with os.fdopen(descriptor, 'w', encoding='utf-8') as file:
                json.dump(values, file, indent=2, sort_keys=True)
            os.replace(temp_path, self.path)
        except OSError as error:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise ConfigStoreError('Unable to write config file {}: {}'.format(self.path, error)) from error

        logger.debug('Wrote %d keys to %s', len(values), self.path)

    def _load_for_write(self) -> Tuple[Dict[str, Any], bool]:
        # An unreadable file is replaced by the next write
        try:
            return dict(self._load()), False
        except ConfigStoreError as error:
            logger.warning('Discarding unreadable config file: %s', error)
            return {}, True

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        values, _ = self._load_for_write()
        values[key] = value
        self._save(values)
        self._values = values

    def delete(self, key: str) -> None:
        values, discarded = self._load_for_write()
        if key not in values and not discarded:
            return
        values.pop(key, None)
        self._save(values)
        self._values = values
