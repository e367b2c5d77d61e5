from django.test import TestCase

from apps.settingsx.models import SettingKV
from apps.settingsx.services import get_bool_setting, get_setting, set_setting


class SettingKVServiceTests(TestCase):
    def test_missing_key_returns_default(self):
        self.assertIsNone(get_setting("NOPE"))
        self.assertEqual(get_setting("NOPE", "x"), "x")
        self.assertTrue(get_bool_setting("NOPE", True))

    def test_set_setting_upserts(self):
        set_setting("ALLOW_NEGATIVE_STOCK", True, description="Let dispatch go below zero")
        set_setting("ALLOW_NEGATIVE_STOCK", False)
        row = SettingKV.objects.get(pk="ALLOW_NEGATIVE_STOCK")
        self.assertEqual(row.value, "false")
        self.assertEqual(row.description, "Let dispatch go below zero")

    def test_bool_parsing(self):
        for value, expected in (("1", True), ("Yes", True), ("on", True), ("0", False), ("nope", False)):
            set_setting("FLAG", value)
            self.assertEqual(get_bool_setting("FLAG"), expected, value)
        set_setting("FLAG", "  ")
        self.assertTrue(get_bool_setting("FLAG", True))
