import unittest
from types import SimpleNamespace
from unittest.mock import Mock, patch

from mcidle.application_factory import create_app
from mcidle.routes import control_routes


def _state(token="s3cret"):
    return SimpleNamespace(
        API_TOKEN=token,
        IDLE_THRESHOLD_SECONDS=60,
        log_action=Mock(),
        log_exception=Mock(),
        get_status=Mock(return_value="active"),
        load_idle_state=Mock(),
    )


class ControlRoutesTests(unittest.TestCase):
    def setUp(self):
        self.state = _state()
        self.client = create_app(self.state).test_client()

    def test_status_merges_idle_countdown(self):
        with patch.object(control_routes, "maintenance_status", return_value={"ok": True, "active": False}), \
                patch.object(control_routes, "get_idle_countdown", return_value="00:30"):
            response = self.client.get("/status")
        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(payload["service_status"], "active")
        self.assertEqual(payload["idle_countdown"], "00:30")

    def test_worlds_listing(self):
        listing = {"ok": True, "archives": [{"name": "alpha"}], "live": [], "world_store": "/w"}
        with patch.object(control_routes, "list_worlds", return_value=listing):
            response = self.client.get("/worlds")
        self.assertEqual(response.get_json()["archives"][0]["name"], "alpha")

    def test_enable_requires_token(self):
        with patch.object(control_routes, "enable_maintenance") as enable:
            response = self.client.post("/maintenance/enable", data={"minutes": "30"})
        self.assertEqual(response.status_code, 403)
        enable.assert_not_called()
        self.state.log_action.assert_called()

    def test_enable_with_header_token(self):
        fake = {"ok": True, "active": True, "minutes": 30}
        with patch.object(control_routes, "enable_maintenance", return_value=fake) as enable:
            response = self.client.post(
                "/maintenance/enable",
                data={"minutes": "30"},
                headers={"X-API-Token": "s3cret"},
            )
        self.assertEqual(response.status_code, 200)
        enable.assert_called_once_with(self.state, "30")

    def test_enable_with_json_body(self):
        fake = {"ok": False, "error": "invalid_input", "message": "bad"}
        with patch.object(control_routes, "enable_maintenance", return_value=fake) as enable:
            response = self.client.post("/maintenance/enable", json={"token": "s3cret", "minutes": "abc"})
        self.assertEqual(response.status_code, 400)
        enable.assert_called_once_with(self.state, "abc")

    def test_disable_and_idle_check(self):
        with patch.object(control_routes, "disable_maintenance", return_value={"ok": True}), \
                patch.object(control_routes, "run_idle_check", return_value={"ok": True, "action": "active"}):
            disable = self.client.post("/maintenance/disable", data={"token": "s3cret"})
            tick = self.client.post("/idle-check", headers={"X-API-Token": "s3cret"})
        self.assertEqual(disable.status_code, 200)
        self.assertEqual(tick.get_json()["action"], "active")

    def test_mutations_disabled_without_configured_token(self):
        client = create_app(_state(token="")).test_client()
        response = client.post("/maintenance/disable", headers={"X-API-Token": "anything"})
        self.assertEqual(response.status_code, 503)

    def test_unexpected_error_is_logged(self):
        with patch.object(control_routes, "list_worlds", side_effect=RuntimeError("disk gone")):
            response = self.client.get("/worlds")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json()["error"], "internal_error")
        self.state.log_exception.assert_called_once()


if __name__ == "__main__":
    unittest.main()
