import os
import sys
import unittest
import keyring
import yaml
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from db import StateRepository
from state import StateStore


class DummyKeyring(keyring.backend.KeyringBackend):
    priority = 1

    def __init__(self):
        self.store = {}

    def get_password(self, service, username):
        return self.store.get((service, username))

    def set_password(self, service, username, password):
        self.store[(service, username)] = password

    def delete_password(self, service, username):
        self.store.pop((service, username), None)


class SettingsEncryptionTest(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = DummyKeyring()
        keyring.set_keyring(self.backend)
        os.environ['ENCRYPT_SETTINGS'] = '1'
        self.path = 'enc_settings.yaml'
        self.db_path = 'enc_settings.db'
        for path in (self.path, self.db_path):
            if os.path.exists(path):
                os.remove(path)

    def tearDown(self) -> None:
        for path in (self.path, self.db_path):
            if os.path.exists(path):
                os.remove(path)
        os.environ.pop('ENCRYPT_SETTINGS', None)

    def test_email_kept_in_keyring(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({'email': 'lifter@example.com', 'units': 'imperial'})
        with open(self.path, encoding='utf-8') as f:
            raw = yaml.safe_load(f)
        self.assertIs(raw['email'], True)
        self.assertEqual(
            self.backend.get_password('resistance-diary', 'email'), 'lifter@example.com'
        )
        data = cfg.load()
        self.assertEqual(data['email'], 'lifter@example.com')
        self.assertEqual(data['units'], 'imperial')

    def test_missing_secret_dropped(self) -> None:
        with open(self.path, 'w', encoding='utf-8') as f:
            yaml.safe_dump({'email': True, 'name': 'Sam'}, f)
        data = YamlConfig(self.path).load()
        self.assertNotIn('email', data)
        self.assertEqual(data['name'], 'Sam')

    def test_placeholder_resolved_after_encryption_turned_off(self) -> None:
        YamlConfig(self.path).save({'email': 'lifter@example.com', 'units': 'metric'})
        os.environ.pop('ENCRYPT_SETTINGS', None)
        cfg = YamlConfig(self.path)
        self.assertFalse(cfg.encrypt)
        self.assertEqual(cfg.load()['email'], 'lifter@example.com')
        store = StateStore.load(StateRepository(self.db_path), cfg)
        self.assertEqual(store.state.settings.email, 'lifter@example.com')

    def test_unresolvable_placeholder_does_not_break_startup(self) -> None:
        os.environ.pop('ENCRYPT_SETTINGS', None)
        with open(self.path, 'w', encoding='utf-8') as f:
            yaml.safe_dump({'email': True, 'units': 'imperial', 'theme': 'dark'}, f)
        cfg = YamlConfig(self.path)
        self.assertEqual(cfg.load(), {'units': 'imperial'})
        store = StateStore.load(StateRepository(self.db_path), cfg)
        self.assertIsNone(store.state.settings.email)
        self.assertEqual(store.state.settings.units.value, 'imperial')


if __name__ == '__main__':
    unittest.main()
