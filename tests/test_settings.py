# tests/test_settings.py
"""
Unit tests for SheetReviewer.settings.lib
(covers validators, ConfigPaths, and SettingsAPI).

Run with:
    python -m unittest tests.test_settings
"""
import json
import unittest
from pathlib import Path
from typing import Any, Dict

from SheetReviewer.settings import lib
from SheetReviewer.settings.lib import (
    REVIEW_SCHEMA,
    SettingsAPI,
    _validate_item_schema,
    _validate_polling,
    _validate_view,
)
from SheetReviewer.status import status
from tests.base import BaseTestCase, SignalRecorder, mute_ui_signals

DUMMY_SECRET = {
    "installed": {
        "client_id": "dummy",
        "project_id": "dummy",
        "client_secret": "dummy",
        "auth_uri": "https://example",
        "token_uri": "https://example",
    }
}


def write_json(path: Path, data: Dict[str, Any]) -> None:
    path.write_text(json.dumps(data, indent=4), encoding="utf-8")


def view_fixture(**overrides: Any) -> Dict[str, Any]:
    view = {
        "filter_column": -1,
        "filter_value": "",
        "section_columns": [9, 10, 11, 12],
        "section_vocabulary": ["yes", "interested", "very interested"],
    }
    view.update(overrides)
    return view


class ValidatorTests(unittest.TestCase):
    def test_item_schema_good(self):
        _validate_item_schema(
            "spreadsheet",
            {"id": "abc", "worksheet": "Form Responses 1"},
            REVIEW_SCHEMA["spreadsheet"]["item_schema"],
        )

    def test_item_schema_missing_field(self):
        with self.assertRaises(ValueError):
            _validate_item_schema("spreadsheet", {"id": "abc"}, REVIEW_SCHEMA["spreadsheet"]["item_schema"])

    def test_item_schema_wrong_type(self):
        with self.assertRaises(TypeError):
            _validate_item_schema(
                "spreadsheet",
                {"id": 12, "worksheet": "x"},
                REVIEW_SCHEMA["spreadsheet"]["item_schema"],
            )

    def test_item_schema_rejects_bool_for_numbers(self):
        with self.assertRaises(TypeError):
            _validate_item_schema(
                "polling",
                {"interval": True, "enabled": True},
                REVIEW_SCHEMA["polling"]["item_schema"],
            )

    def test_item_schema_not_a_dict(self):
        with self.assertRaises(TypeError):
            _validate_item_schema("view", [], REVIEW_SCHEMA["view"]["item_schema"])

    def test_polling_interval_must_be_positive(self):
        _validate_polling({"interval": 0.5, "enabled": True})
        for bad in (0, -1):
            with self.subTest(interval=bad):
                with self.assertRaises(ValueError):
                    _validate_polling({"interval": bad, "enabled": True})

    def test_view_good(self):
        _validate_view(view_fixture())
        _validate_view(view_fixture(filter_column=13, filter_value="AI"))

    def test_view_bad_values(self):
        cases = [
            (view_fixture(filter_column=-2), ValueError),
            (view_fixture(section_columns=[1, 2, 3]), ValueError),
            (view_fixture(section_columns=[1, 2, 3, -4]), ValueError),
            (view_fixture(section_columns=[1, 2, 3, "4"]), TypeError),
            (view_fixture(section_columns=[1, 2, 3, True]), TypeError),
            (view_fixture(section_vocabulary=["yes", 1]), TypeError),
        ]
        for view, error in cases:
            with self.subTest(view=view):
                with self.assertRaises(error):
                    _validate_view(view)


class RealTemplateSmokeTest(BaseTestCase):
    def test_templates_exist(self):
        cp = lib.ConfigPaths()
        self.assertTrue(cp.client_secret_template.exists())
        self.assertTrue(cp.review_template.exists())

    def test_template_is_valid(self):
        with self.config_paths.review_template.open("r", encoding="utf-8") as f:
            data = json.load(f)
        lib.settings.validate_review_data(data)
        self.assertEqual(data["spreadsheet"]["worksheet"], lib.DEFAULT_WORKSHEET)
        self.assertEqual(data["polling"]["interval"], lib.DEFAULT_POLL_INTERVAL)


class SettingsAPIBehaviour(BaseTestCase):
    """Functional coverage for SettingsAPI."""

    def setUp(self) -> None:
        super().setUp()
        write_json(self.config_paths.client_secret_path, DUMMY_SECRET)

        self.api: SettingsAPI = lib.settings
        self.api.load_review()
        self.api.load_client_secret()

    def test_get_section_returns_copy(self):
        section = self.api.get_section("spreadsheet")
        section["id"] = "changed"
        self.assertNotEqual(self.api.get_section("spreadsheet")["id"], "changed")

    def test_get_unknown_section(self):
        with self.assertRaises(KeyError):
            self.api.get_section("bogus")

    def test_set_section_persists_and_emits(self):
        from SheetReviewer.ui.actions import signals
        changed = SignalRecorder(signals.configSectionChanged)

        self.api.set_section("spreadsheet", {"id": "abc123", "worksheet": "Responses"})

        self.assertEqual(changed.last, "spreadsheet")
        with self.api.review_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["spreadsheet"]["id"], "abc123")
        self.assertEqual(data["spreadsheet"]["worksheet"], "Responses")

    def test_set_section_invalid_value_rollback(self):
        with self.assertRaises(ValueError):
            self.api.set_section("polling", {"interval": 0, "enabled": True})
        self.assertEqual(self.api.get_section("polling")["interval"], lib.DEFAULT_POLL_INTERVAL)

        with self.assertRaises(ValueError):
            self.api.set_section("view", view_fixture(section_columns=[1]))
        self.assertEqual(len(self.api.get_section("view")["section_columns"]), lib.SECTION_COLUMN_COUNT)

    def test_set_unknown_section(self):
        with self.assertRaises(ValueError):
            self.api.set_section("bogus", {})

    def test_load_missing_review(self):
        self.api.review_path.unlink()
        with mute_ui_signals():
            with self.assertRaises(status.ConfigNotFoundError):
                self.api.load_review()

    def test_load_invalid_review(self):
        self.api.review_path.write_text("not json", encoding="utf-8")
        with mute_ui_signals():
            with self.assertRaises(status.ConfigInvalidError):
                self.api.load_review()

    def test_load_review_missing_section(self):
        write_json(self.api.review_path, {"spreadsheet": {"id": "", "worksheet": "x"}})
        with mute_ui_signals():
            with self.assertRaises(status.ConfigInvalidError):
                self.api.load_review()

    def test_validate_client_secret(self):
        self.assertEqual(self.api.validate_client_secret(), "installed")
        self.assertEqual(self.api.validate_client_secret({"web": DUMMY_SECRET["installed"]}), "web")

    def test_validate_client_secret_missing_section(self):
        with mute_ui_signals():
            with self.assertRaises(status.ClientSecretInvalidError):
                self.api.validate_client_secret({"bogus": {}})

    def test_validate_client_secret_missing_fields(self):
        with mute_ui_signals():
            with self.assertRaises(status.ClientSecretInvalidError):
                self.api.validate_client_secret({"installed": {"client_id": "only"}})

    def test_template_client_secret_is_incomplete(self):
        self.api.revert_client_secret_to_template()
        self.api.load_client_secret()
        with mute_ui_signals():
            with self.assertRaises(status.ClientSecretInvalidError):
                self.api.validate_client_secret()

    def test_save_section_unknown(self):
        with self.assertRaises(ValueError):
            self.api.save_section("does_not_exist")

    def test_client_secret_revert(self):
        self.api.client_secret_path.unlink()
        with self.assertRaises(FileNotFoundError):
            self.api.load_client_secret()

        self.api.revert_client_secret_to_template()
        self.assertTrue(self.api.client_secret_path.exists())

    def test_set_client_secret(self):
        secret = json.loads(json.dumps(DUMMY_SECRET))
        secret["installed"]["client_id"] = "another"
        self.api.set_section("client_secret", secret)
        with self.api.client_secret_path.open("r", encoding="utf-8") as f:
            self.assertEqual(json.load(f)["installed"]["client_id"], "another")

