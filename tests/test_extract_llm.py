from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from recipebook.config import Settings
from recipebook.pipeline import extract_llm
from recipebook.pipeline.extract_llm import (
    LLMParseError,
    _clean_ingredients,
    _extract_json_block,
    is_configured,
    parse_with_llm,
    smart_parse,
    translate_text,
)

TEXT = "Greek Salad\nIngredients:\n2 cups tomatoes\n1 onion\nInstructions:\n1. Chop vegetables."

LLM_REPLY = {
    "title": "Greek Salad",
    "translatedTitle": "Χωριάτικη σαλάτα",
    "servings": 2,
    "originalLanguage": "en",
    "ingredients": [
        {"quantity": 2, "unit": "cups", "item": "tomatoes", "translatedItem": "ντομάτες"},
        {"quantity": 1, "unit": None, "item": "onion"},
    ],
    "instructions": ["Chop vegetables."],
    "translatedInstructions": ["Κόβουμε τα λαχανικά."],
}


class LLMTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.settings = Settings(recipes_dir=Path(self.tmp.name), openai_api_key="sk-test")
        self.offline = Settings(recipes_dir=Path(self.tmp.name))


class SmartParseTests(LLMTestCase):
    def test_is_configured(self) -> None:
        self.assertTrue(is_configured(self.settings))
        self.assertFalse(is_configured(self.offline))

    def test_without_credentials_uses_heuristic_parser_silently(self) -> None:
        with mock.patch.object(extract_llm, "_complete") as complete:
            outcome = smart_parse(TEXT, "auto", self.offline)
        complete.assert_not_called()
        self.assertEqual(outcome.engine, "heuristic")
        self.assertIsNone(outcome.warning)
        self.assertEqual(outcome.recipe.title, "Greek Salad")

    def test_llm_reply_in_code_fence(self) -> None:
        reply = "Here you go:\n```json\n" + json.dumps(LLM_REPLY, ensure_ascii=False) + "\n```"
        with mock.patch.object(extract_llm, "_complete", return_value=reply):
            outcome = smart_parse(TEXT, "auto", self.settings)
        recipe = outcome.recipe
        self.assertEqual(outcome.engine, "llm")
        self.assertIsNone(outcome.warning)
        self.assertEqual(recipe.servings, 2)
        self.assertEqual(recipe.translated_title, "Χωριάτικη σαλάτα")
        self.assertEqual(recipe.translated_language, "el")
        self.assertEqual(recipe.ingredients[0].unit, "cup")
        self.assertEqual(recipe.ingredients[0].translated_item, "ντομάτες")
        self.assertIsNone(recipe.ingredients[1].translated_item)
        self.assertEqual(recipe.translated_instructions, ["Κόβουμε τα λαχανικά."])
        self.assertEqual(recipe.original_text, TEXT)

    def test_request_failure_falls_back_with_warning(self) -> None:
        with mock.patch.object(extract_llm, "_complete", side_effect=RuntimeError("timeout")):
            outcome = smart_parse(TEXT, "auto", self.settings)
        self.assertEqual(outcome.engine, "heuristic")
        self.assertEqual(outcome.warning, "AI parsing failed, using basic parser")
        self.assertEqual(len(outcome.recipe.ingredients), 2)

    def test_unparseable_reply_falls_back_with_warning(self) -> None:
        with mock.patch.object(extract_llm, "_complete", return_value="Sorry, I can't help with that."):
            outcome = smart_parse(TEXT, "auto", self.settings)
        self.assertEqual(outcome.engine, "heuristic")
        self.assertIsNotNone(outcome.warning)


class ParseWithLLMTests(LLMTestCase):
    def test_json_array_is_rejected(self) -> None:
        with mock.patch.object(extract_llm, "_complete", return_value="[1, 2]"):
            with self.assertRaises(LLMParseError):
                parse_with_llm(TEXT, "auto", self.settings)

    def test_missing_fields_get_defaults(self) -> None:
        reply = json.dumps({"ingredients": [{"item": "feta"}], "servings": "lots"})
        with mock.patch.object(extract_llm, "_complete", return_value=reply):
            recipe = parse_with_llm("φέτα και ελιές", "auto", self.settings)
        self.assertEqual(recipe.title, "Untitled Recipe")
        self.assertEqual(recipe.servings, 4)
        self.assertEqual(recipe.original_language, "el")
        self.assertIsNone(recipe.translated_language)

    def test_translated_instructions_follow_instruction_count(self) -> None:
        extra = dict(LLM_REPLY, translatedInstructions=["Κόβουμε τα λαχανικά.", "Σερβίρουμε."])
        with mock.patch.object(extract_llm, "_complete", return_value=json.dumps(extra)):
            self.assertEqual(parse_with_llm(TEXT, "auto", self.settings).translated_instructions,
                             ["Κόβουμε τα λαχανικά."])
        short = dict(LLM_REPLY, instructions=["Chop vegetables.", "Serve."])
        with mock.patch.object(extract_llm, "_complete", return_value=json.dumps(short)):
            self.assertEqual(parse_with_llm(TEXT, "auto", self.settings).translated_instructions,
                             ["Κόβουμε τα λαχανικά.", None])

    def test_missing_key_raises(self) -> None:
        with self.assertRaises(LLMParseError):
            parse_with_llm(TEXT, "auto", self.offline)


class HelperTests(unittest.TestCase):
    def test_extract_json_block(self) -> None:
        self.assertEqual(_extract_json_block('{"a": 1}'), {"a": 1})
        self.assertEqual(_extract_json_block('Sure! {"a": 1} Enjoy.'), {"a": 1})
        self.assertEqual(_extract_json_block('```\n{"a": 1}\n```'), {"a": 1})
        with self.assertRaises(LLMParseError):
            _extract_json_block("no json here")

    def test_clean_ingredients(self) -> None:
        cleaned = _clean_ingredients([
            {"quantity": 0, "unit": "g", "item": "sugar"},
            {"quantity": "1,5", "unit": "Tablespoons", "item": "oil"},
            {"quantity": 1, "unit": "clove", "item": "garlic"},
            {"quantity": 2, "unit": "g", "item": ""},
            "not a dict",
        ])
        self.assertEqual(len(cleaned), 3)
        self.assertIsNone(cleaned[0].quantity)
        self.assertEqual((cleaned[1].quantity, cleaned[1].unit), (1.5, "tbsp"))
        self.assertIsNone(cleaned[2].unit)
        self.assertEqual(cleaned[2].item, "clove garlic")


class TranslateTextTests(LLMTestCase):
    def test_unconfigured_returns_none(self) -> None:
        self.assertIsNone(translate_text("salt", "en", "el", self.offline))

    def test_translation(self) -> None:
        with mock.patch.object(extract_llm, "_complete", return_value="  αλάτι \n") as complete:
            self.assertEqual(translate_text("salt", "en", "el", self.settings), "αλάτι")
        prompt = complete.call_args[0][2]
        self.assertIn("from English to Greek", prompt)

    def test_failure_returns_none(self) -> None:
        with mock.patch.object(extract_llm, "_complete", side_effect=RuntimeError("boom")):
            self.assertIsNone(translate_text("salt", "en", "el", self.settings))


if __name__ == "__main__":
    unittest.main()
