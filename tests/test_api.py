import unittest

from fastapi.testclient import TestClient

from kiosk.api.app import create_app
from kiosk.infra.config import AppConfig
from kiosk.infra.persistence import MemoryBackend
from kiosk.notify.base import BaseNotifier, SendResult
from kiosk.notify.telegram import TelegramNotifier
from kiosk.notify.updates import UpdateHandler
from kiosk.orders.store import OrderStore
from kiosk.service import OrderService


class FakeNotifier(BaseNotifier):
    def __init__(self, deliver: bool = True) -> None:
        super().__init__(configured=True)
        self.deliver = deliver
        self.messages: list[str] = []

    def probe(self) -> bool:
        self._record_result(self.deliver, "probe")
        return self.deliver

    def send(self, text: str, buttons=None) -> SendResult:
        self.messages.append(text)
        self._record_result(self.deliver, "send")
        if self.deliver:
            return SendResult(delivered=True, message_id=7)
        return SendResult(delivered=False, reason="timed out")


class StubResponse:
    status_code = 200

    def json(self) -> dict:
        return {"ok": True, "result": {"message_id": 1}}


class StubSession:
    def __init__(self) -> None:
        self.methods: list[str] = []

    def post(self, url: str, json=None, timeout=None) -> StubResponse:
        self.methods.append(url.rsplit("/", 1)[-1])
        return StubResponse()


class OrderApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self.store = OrderStore(MemoryBackend())
        self.notifier = FakeNotifier()
        self.service = OrderService(store=self.store, notifier=self.notifier)
        self.client = TestClient(create_app(self.service), raise_server_exceptions=False)

    def test_order_lifecycle_scenario(self) -> None:
        response = self.client.post("/order", json={"guest": "Ana", "coffee": "Espresso"})
        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual("Ana", body["order"]["guest"])
        self.assertEqual({"sent": True, "messageId": 7}, body["telegram"])
        self.assertEqual(1, len(self.store))

        response = self.client.post("/order", json={"guest": "ana", "coffee": "espresso", "options": "decaf"})
        self.assertEqual(200, response.status_code)
        self.assertEqual(1, len(self.store))
        self.assertEqual("decaf", self.store.orders[0].options)

        response = self.client.delete("/order/Ana/Espresso")
        self.assertEqual(200, response.status_code)
        self.assertTrue(response.json()["success"])
        self.assertEqual(0, len(self.store))

        response = self.client.delete("/order/Ana/Espresso")
        self.assertEqual(404, response.status_code)
        self.assertEqual("Order not found", response.json()["error"])

    def test_path_parameters_are_url_decoded(self) -> None:
        self.client.post("/order", json={"guest": "Anna Maria", "coffee": "Latte Macchiato"})

        response = self.client.delete("/order/Anna%20Maria/Latte%20Macchiato")

        self.assertEqual(200, response.status_code)
        self.assertEqual(0, len(self.store))

    def test_guest_with_slash_can_be_deleted(self) -> None:
        self.client.post("/order", json={"guest": "A/B", "coffee": "Espresso"})

        response = self.client.delete("/order/A%2FB/Espresso")

        self.assertEqual(200, response.status_code)
        self.assertEqual(0, len(self.store))

    def test_delete_without_coffee_segment_returns_400(self) -> None:
        response = self.client.delete("/order/Ana")

        self.assertEqual(400, response.status_code)
        self.assertFalse(response.json()["success"])

    def test_missing_fields_return_400(self) -> None:
        response = self.client.post("/order", json={"guest": "Ana"})

        self.assertEqual(400, response.status_code)
        self.assertFalse(response.json()["success"])
        self.assertEqual(0, len(self.store))
        self.assertEqual([], self.notifier.messages)

    def test_non_object_body_returns_400(self) -> None:
        response = self.client.post("/order", json=["Ana", "Espresso"])

        self.assertEqual(400, response.status_code)

    def test_notifier_failure_still_returns_200(self) -> None:
        self.notifier.deliver = False

        response = self.client.post("/order", json={"guest": "Ana", "coffee": "Espresso"})

        self.assertEqual(200, response.status_code)
        self.assertEqual({"sent": False, "reason": "timed out"}, response.json()["telegram"])
        self.assertEqual(1, len(self.store))

    def test_delete_all_orders(self) -> None:
        self.client.post("/order", json={"guest": "Ana", "coffee": "Espresso"})
        self.client.post("/order", json={"guest": "Ben", "coffee": "Americano"})

        first = self.client.delete("/orders")
        second = self.client.delete("/orders")

        self.assertEqual(200, first.status_code)
        self.assertEqual("All orders cleared", first.json()["message"])
        self.assertEqual(200, second.status_code)
        self.assertEqual("No orders present", second.json()["message"])
        self.assertEqual(0, len(self.store))

    def test_status_and_health(self) -> None:
        self.client.post("/order", json={"guest": "Ana", "coffee": "Cappuccino"})

        status = self.client.get("/status").json()
        health = self.client.get("/health").json()

        self.assertEqual(1, len(status["orders"]))
        self.assertEqual(1, status["counts"]["Cappuccino"])
        self.assertEqual("functional", status["botStatus"])
        self.assertEqual("OK", health["status"])
        self.assertTrue(health["botFunctional"])
        self.assertEqual(1, health["ordersCount"])
        self.assertIn("timestamp", health)

    def test_metrics_count_order_events(self) -> None:
        self.client.post("/order", json={"guest": "Ana", "coffee": "Cappuccino"})
        self.client.post("/order", json={"guest": "Ana", "coffee": "Cappuccino", "options": "oat milk"})

        metrics = self.client.get("/metrics").json()

        self.assertEqual(1, metrics["orders_created"])
        self.assertEqual(1, metrics["orders_updated"])

    def test_unexpected_error_returns_500_and_server_keeps_serving(self) -> None:
        def broken_status() -> dict:
            raise RuntimeError("boom")

        self.service.status = broken_status

        with self.assertLogs("kiosk.api", level="ERROR"):
            response = self.client.get("/status")

        self.assertEqual(500, response.status_code)
        self.assertEqual("Internal server error", response.json()["error"])
        self.assertEqual(200, self.client.get("/health").status_code)

    def test_cors_allows_any_origin_by_default(self) -> None:
        response = self.client.get("/health", headers={"Origin": "https://kiosk.example"})

        self.assertEqual("*", response.headers.get("access-control-allow-origin"))

    def test_webhook_route_is_absent_without_handler(self) -> None:
        response = self.client.post("/telegram/webhook", json={"update_id": 1})

        self.assertEqual(404, response.status_code)


class WebhookApiTest(unittest.TestCase):
    def test_done_callback_completes_order(self) -> None:
        session = StubSession()
        notifier = TelegramNotifier("123456:" + "x" * 30, "42", session=session)
        store = OrderStore(MemoryBackend())
        store.upsert("Ana", "Espresso")
        service = OrderService(store=store, notifier=notifier)
        app = create_app(service, AppConfig(), update_handler=UpdateHandler(service, notifier))
        client = TestClient(app)

        response = client.post(
            "/telegram/webhook",
            json={"update_id": 10, "callback_query": {"id": "cb1", "data": "done|Ana|Espresso"}},
        )

        self.assertEqual({"ok": True}, response.json())
        self.assertEqual(0, len(store))
        self.assertIn("answerCallbackQuery", session.methods)


if __name__ == "__main__":
    unittest.main()
