"""
==============================================================================
Scanner WebSocket Tests
==============================================================================

Drives /ws/scan the way a browser does: init, camera permission, stream,
then pushed frames. The scripted decoder decides what each frame holds.

==============================================================================
"""

from typing import Dict

from fastapi.testclient import TestClient

from conftest import EAN13, EAN8, ScriptedDecoder, encode_frame


def _start_scanning(ws, **init) -> dict:
    """Init, grant permission and attach the stream. Returns the init reply."""
    ws.send_json({"type": "init", **init})
    reply = ws.receive_json()
    assert reply["type"] == "init"
    assert ws.receive_json()["phase"] == "idle"

    ws.send_json({"type": "permission", "granted": True})
    assert ws.receive_json()["permission"] is True

    ws.send_json({"type": "stream", "status": "attached"})
    state = ws.receive_json()
    assert state["type"] == "state"
    assert state["phase"] == "scanning"
    return reply


class TestScannerHandshake:
    """Authentication and init."""

    def test_bad_token(self, client: TestClient, catalog: Dict):
        with client.websocket_connect("/ws/scan?token=garbage") as ws:
            message = ws.receive_json()
        assert message["type"] == "error"
        assert message["code"] == "AUTH_REQUIRED"

    def test_missing_token(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as ws:
            assert ws.receive_json()["code"] == "AUTH_REQUIRED"

    def test_first_message_must_be_init(self, client: TestClient, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            ws.send_json({"type": "frame", "frame": encode_frame()})
            assert ws.receive_json()["code"] == "INIT_REQUIRED"

    def test_init_reply(self, client: TestClient, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            ws.send_json({"type": "init", "mode": "lookup", "facing_mode": "user"})
            reply = ws.receive_json()
            state = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert reply == {"type": "init", "mode": "lookup", "session_id": None, "user": "alice"}
        assert state["is_open"] is True
        assert state["facing_mode"] == "user"
        assert state["permission"] is None

    def test_unknown_session(self, client: TestClient, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            ws.send_json({"type": "init", "mode": "stock_taking", "session_id": "missing"})
            assert ws.receive_json()["code"] == "SESSION_NOT_FOUND"


class TestScannerLookup:
    """Lookup mode scanning."""

    def test_scan_resolves_products(self, client: TestClient, catalog: Dict,
                                    decoder: ScriptedDecoder, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            _start_scanning(ws, mode="lookup")

            decoder.text = EAN13
            ws.send_json({"type": "frame", "frame": encode_frame()})
            scan = ws.receive_json()
            after = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert scan["type"] == "scan"
        assert scan["barcode"] == EAN13
        assert scan["format"] == "EAN-13"
        assert scan["valid"] is True
        assert [p["sku"] for p in scan["products"]] == ["SKU-1001"]
        assert after["type"] == "state"
        assert after["is_open"] is False

    def test_unknown_barcode_has_no_products(self, client: TestClient, catalog: Dict,
                                             decoder: ScriptedDecoder, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            _start_scanning(ws)

            decoder.text = EAN8
            ws.send_json({"type": "frame", "frame": encode_frame()})
            scan = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert scan["type"] == "scan"
        assert scan["products"] == []

    def test_invalid_decode_is_rejected(self, client: TestClient, catalog: Dict,
                                        decoder: ScriptedDecoder, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            _start_scanning(ws)

            decoder.text = "üñî"
            ws.send_json({"type": "frame", "frame": encode_frame()})
            rejected = ws.receive_json()
            after = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert rejected["type"] == "rejected"
        assert rejected["code"] == "INVALID_BARCODE"
        assert after["is_open"] is False

    def test_frames_ignored_when_permission_denied(self, client: TestClient, catalog: Dict,
                                                   decoder: ScriptedDecoder, x_token: str):
        decoder.text = EAN13
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            ws.send_json({"type": "init", "mode": "lookup"})
            ws.receive_json()
            ws.receive_json()

            ws.send_json({"type": "permission", "granted": False})
            denied = ws.receive_json()

            ws.send_json({"type": "frame", "frame": encode_frame()})
            ws.send_json({"type": "close"})
            closed = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert denied["phase"] == "permission_denied"
        assert denied["error"]
        assert closed["type"] == "state"
        assert closed["is_open"] is False
        assert decoder.calls == 0

    def test_empty_frames_keep_scanning(self, client: TestClient, catalog: Dict,
                                        decoder: ScriptedDecoder, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            _start_scanning(ws)

            ws.send_json({"type": "frame", "frame": encode_frame()})
            ws.send_json({"type": "frame", "frame": "not base64 !!"})
            ws.send_json({"type": "torch", "enabled": True})
            state = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert state["phase"] == "scanning"
        assert state["torch_on"] is True
        assert decoder.calls > 0

    def test_cooldown_survives_reopen(self, client: TestClient, catalog: Dict,
                                      decoder: ScriptedDecoder, x_token: str):
        decoder.text = EAN13
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            _start_scanning(ws)
            ws.send_json({"type": "frame", "frame": encode_frame()})
            assert ws.receive_json()["type"] == "scan"
            ws.receive_json()

            ws.send_json({"type": "open"})
            ws.receive_json()
            ws.send_json({"type": "permission", "granted": True})
            ws.receive_json()
            ws.send_json({"type": "stream", "status": "attached"})
            ws.receive_json()

            ws.send_json({"type": "frame", "frame": encode_frame()})
            ws.send_json({"type": "toggle_facing"})
            state = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert state["type"] == "state"
        assert state["facing_mode"] == "user"

    def test_non_object_messages(self, client: TestClient, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            ws.send_json({"type": "init"})
            ws.receive_json()
            ws.receive_json()

            ws.send_json([1, 2, 3])
            array_reply = ws.receive_json()
            ws.send_json(42)
            number_reply = ws.receive_json()

            ws.send_json({"type": "close"})
            state = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert array_reply["code"] == "INVALID_MESSAGE"
        assert number_reply["code"] == "INVALID_MESSAGE"
        assert state["type"] == "state"

    def test_non_object_init(self, client: TestClient, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            ws.send_json(["init"])
            assert ws.receive_json()["code"] == "INIT_REQUIRED"

    def test_unknown_message(self, client: TestClient, x_token: str):
        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            ws.send_json({"type": "init"})
            ws.receive_json()
            ws.receive_json()
            ws.send_json({"type": "dance"})
            message = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert message["code"] == "UNKNOWN_MESSAGE"


class TestScannerStockTaking:
    """Stock taking mode scanning."""

    def _session(self, client: TestClient, x_token: str) -> str:
        response = client.post(
            "/api/v1/stock-taking/sessions",
            headers={"Authorization": f"Bearer {x_token}"},
            json={"session_name": "Cold room"}
        )
        return response.json()["session"]["id"]

    def test_scan_counts_item(self, client: TestClient, catalog: Dict,
                              decoder: ScriptedDecoder, x_token: str):
        session_id = self._session(client, x_token)

        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            reply = _start_scanning(ws, mode="stock_taking", session_id=session_id)

            decoder.text = EAN13
            ws.send_json({"type": "frame", "frame": encode_frame()})
            scan = ws.receive_json()
            ws.receive_json()
            ws.send_json({"type": "stop"})

        assert reply["session_id"] == session_id
        assert scan["type"] == "scan"
        assert scan["is_update"] is False
        assert scan["item"]["counted_quantity"] == 1
        assert scan["item"]["system_quantity"] == 48
        assert scan["products"][0]["sku"] == "SKU-1001"

        detail = client.get(
            f"/api/v1/stock-taking/sessions/{session_id}",
            headers={"Authorization": f"Bearer {x_token}"}
        ).json()["session"]
        assert detail["summary"]["total_counted"] == 1

    def test_unknown_product_reports_error(self, client: TestClient, catalog: Dict,
                                           decoder: ScriptedDecoder, x_token: str):
        session_id = self._session(client, x_token)

        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            _start_scanning(ws, mode="stock_taking", session_id=session_id)

            decoder.text = EAN8
            ws.send_json({"type": "frame", "frame": encode_frame()})
            error = ws.receive_json()
            ws.send_json({"type": "stop"})

        assert error["type"] == "error"
        assert error["code"] == "PRODUCT_NOT_FOUND"

    def test_closed_session_refused(self, client: TestClient, catalog: Dict, x_token: str):
        session_id = self._session(client, x_token)
        client.post(
            f"/api/v1/stock-taking/sessions/{session_id}/cancel",
            headers={"Authorization": f"Bearer {x_token}"}
        )

        with client.websocket_connect(f"/ws/scan?token={x_token}") as ws:
            ws.send_json({"type": "init", "mode": "stock_taking", "session_id": session_id})
            assert ws.receive_json()["code"] == "SESSION_NOT_ACTIVE"
