import asyncio
import json
import unittest
from unittest.mock import MagicMock, patch

import requests

from tastetrail.config import Configuration
from tastetrail.errors import CollaboratorError, GeoapifyError, GeolocationError
from tastetrail.models import Location, PalateProfile, TasteProfile, User
from tastetrail.services.geoapify import GeoapifyClient
from tastetrail.services.gemini import TasteTrailAI
from tastetrail.services.geolocation import IpLocator


def _response(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.json.return_value = payload
    resp.text = json.dumps(payload)
    return resp


class TestTasteTrailAI(unittest.TestCase):
    def setUp(self):
        self.cfg = Configuration(gemini_api_key="test-key")

    @patch("tastetrail.services.gemini.genai.Client")
    def test_find_restaurants_parses_payload_in_order(self, mock_client_cls):
        reply = {
            "restaurants": [
                {"name": "Nagarjuna", "rating": "4.4", "swiggyUrl": "https://swiggy.example/n"},
                {"name": "MTR", "rating": 4.7, "signatureDishes": ["rava idli"]},
            ]
        }
        mock_client_cls.return_value.models.generate_content.return_value = MagicMock(
            text="```json\n" + json.dumps(reply) + "\n```"
        )
        ai = TasteTrailAI(self.cfg)
        result = asyncio.run(
            ai.find_restaurants(
                TasteProfile(custom_notes="spicy"),
                PalateProfile.from_dict({"title": "Fire Chaser"}),
                Location(lat=12.9, lng=77.6),
                None,
                User(name="Alice", id="u-1"),
            )
        )
        self.assertEqual([r.name for r in result.restaurants], ["Nagarjuna", "MTR"])
        self.assertEqual(result.restaurants[0].rating, 4.4)
        self.assertEqual(result.restaurants[0].swiggy_url, "https://swiggy.example/n")
        self.assertEqual(result.restaurants[1].signature_dishes, ("rava idli",))

        kwargs = mock_client_cls.return_value.models.generate_content.call_args.kwargs
        self.assertEqual(kwargs["model"], self.cfg.gemini_model_id)
        prompt = kwargs["contents"][0]
        self.assertIn('"customNotes": "spicy"', prompt)
        self.assertIn('"lat": 12.9', prompt)
        self.assertIn("Fire Chaser", prompt)

    @patch("tastetrail.services.gemini.genai.Client")
    def test_analyze_returns_profile(self, mock_client_cls):
        reply = {"title": "Heat Seeker", "flavorAffinities": ["spicy"], "spiceIndex": 9}
        mock_client_cls.return_value.models.generate_content.return_value = MagicMock(text=json.dumps(reply))
        palate = asyncio.run(TasteTrailAI(self.cfg).analyze_taste_personality(["spicy"], ["bland"]))
        self.assertEqual(palate.title, "Heat Seeker")
        self.assertEqual(palate.to_dict(), reply)

    @patch("tastetrail.services.gemini.genai.Client")
    def test_non_json_reply_is_collaborator_error(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content.return_value = MagicMock(text="sorry!")
        with self.assertRaises(CollaboratorError):
            asyncio.run(TasteTrailAI(self.cfg).analyze_taste_personality([], []))

    @patch("tastetrail.services.gemini.genai.Client")
    def test_sdk_failure_is_wrapped(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content.side_effect = RuntimeError("quota")
        with self.assertRaises(CollaboratorError):
            asyncio.run(TasteTrailAI(self.cfg).analyze_taste_personality([], []))

    def test_no_llm_configured(self):
        ai = TasteTrailAI(Configuration())
        with self.assertRaises(CollaboratorError):
            asyncio.run(ai.analyze_taste_personality(["spicy"], []))

    def test_speech_disabled_without_key(self):
        self.assertIsNone(asyncio.run(TasteTrailAI(Configuration()).generate_speech("hi")))

    @patch("tastetrail.services.gemini.ToolAwareSimpleAgent")
    @patch("tastetrail.services.gemini.HelloAgentsLLM")
    def test_fallback_llm_is_used_without_gemini(self, mock_llm, mock_agent_cls):
        mock_agent_cls.return_value.run.return_value = '<think>hmm</think>{"title": "Sweet Tooth"}'
        cfg = Configuration(llm_provider="ollama", local_llm="llama3.2")
        palate = asyncio.run(TasteTrailAI(cfg).analyze_taste_personality(["sweet"], []))
        self.assertEqual(palate.title, "Sweet Tooth")
        self.assertEqual(mock_llm.call_args.kwargs["base_url"], "http://localhost:11434/v1")
        mock_agent_cls.return_value.clear_history.assert_called_once()


class TestGeoapify(unittest.TestCase):
    def setUp(self):
        self.cfg = Configuration(geoapify_api_key="geo-key")

    def test_city_name_and_cache(self):
        client = GeoapifyClient(self.cfg)
        client.session = MagicMock()
        client.session.get.return_value = _response({"features": [{"properties": {"city": "Bengaluru"}}]})
        self.assertEqual(client.city_name(12.97, 77.59), "Bengaluru")
        self.assertEqual(client.city_name(12.97, 77.59), "Bengaluru")
        self.assertEqual(client.session.get.call_count, 1)
        params = client.session.get.call_args.kwargs["params"]
        self.assertEqual(params["apiKey"], "geo-key")

    def test_no_features_raises(self):
        client = GeoapifyClient(self.cfg)
        client.session = MagicMock()
        client.session.get.return_value = _response({"features": []})
        with self.assertRaises(GeoapifyError):
            client.city_name(0.0, 0.0)

    def test_missing_key_raises(self):
        with self.assertRaises(GeoapifyError):
            GeoapifyClient(Configuration()).city_name(0.0, 0.0)

    @patch("tastetrail.services.geoapify.time.sleep")
    def test_retries_then_fails(self, _sleep):
        client = GeoapifyClient(self.cfg)
        client.session = MagicMock()
        client.session.get.return_value = _response({}, status=503)
        with self.assertRaises(GeoapifyError):
            client.city_name(1.0, 1.0)
        self.assertEqual(client.session.get.call_count, 4)


class TestIpLocator(unittest.TestCase):
    def test_position(self):
        locator = IpLocator(Configuration())
        locator.session = MagicMock()
        locator.session.get.return_value = _response({"latitude": 18.52, "longitude": 73.85})
        self.assertEqual(asyncio.run(locator.get_current_position()), Location(lat=18.52, lng=73.85))

    def test_network_error(self):
        locator = IpLocator(Configuration())
        locator.session = MagicMock()
        locator.session.get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(GeolocationError):
            locator.current_position()

    def test_missing_coordinates(self):
        locator = IpLocator(Configuration())
        locator.session = MagicMock()
        locator.session.get.return_value = _response({"error": True, "reason": "RateLimited"})
        with self.assertRaises(GeolocationError):
            locator.current_position()


class TestConfiguration(unittest.TestCase):
    @patch.dict("os.environ", {"SPEECH_ENABLED": "no", "STORE_DIR": "/tmp/tt", "GEMINI_API_KEY": "abcdefghijkl"})
    def test_from_env(self):
        cfg = Configuration.from_env({"log_level": "DEBUG"})
        self.assertFalse(cfg.speech_enabled)
        self.assertEqual(cfg.store_dir, "/tmp/tt")
        self.assertEqual(cfg.log_level, "DEBUG")
        self.assertIn("abcd...ijkl", cfg.log_summary())


if __name__ == "__main__":
    unittest.main()
