import os
import logging

import yaml
import keyring

from models import UserSettings

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
DEFAULT_DB_PATH = "tracker.db"
DEFAULT_SETTINGS_PATH = "settings.yaml"

# Written in place of a value whose real content lives in the keyring.
KEYRING_PLACEHOLDER = True


def db_path_from_env() -> str:
    return os.environ.get("TRACKER_DB", DEFAULT_DB_PATH)


def settings_path_from_env() -> str:
    return os.environ.get("TRACKER_SETTINGS", DEFAULT_SETTINGS_PATH)


def _settings_keys() -> set:
    keys = set()
    for name, field in UserSettings.model_fields.items():
        keys.add(name)
        if field.alias:
            keys.add(field.alias)
    return keys


class YamlConfig:
    """User settings in a YAML file; sensitive values may live in the keyring.

    With ``ENCRYPT_SETTINGS=1`` the keys in :attr:`SENSITIVE_KEYS` are stored
    in the system keyring and the file only records a placeholder. Loading
    resolves placeholders whether or not encryption is currently enabled, and
    drops any placeholder the keyring cannot resolve.
    """

    SENSITIVE_KEYS = {"email"}

    def __init__(self, path: str = DEFAULT_SETTINGS_PATH) -> None:
        self.path = path
        self.encrypt = os.environ.get("ENCRYPT_SETTINGS") == "1"
        self.service = "resistance-diary"

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s: not a mapping", self.path)
            return {}
        return data

    def load(self) -> dict:
        known = _settings_keys()
        data = {}
        for key, value in self._read().items():
            if key not in known:
                logger.debug("Ignoring unknown setting %r", key)
                continue
            if key in self.SENSITIVE_KEYS and value is KEYRING_PLACEHOLDER:
                value = keyring.get_password(self.service, key)
                if value is None:
                    logger.warning("No keyring entry for setting %r; dropping it", key)
                    continue
            data[key] = value
        return data

    def save(self, data: dict) -> None:
        out = dict(data)
        if self.encrypt:
            for key in self.SENSITIVE_KEYS:
                if out.get(key) is not None:
                    keyring.set_password(self.service, key, str(out[key]))
                    out[key] = KEYRING_PLACEHOLDER
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f)
