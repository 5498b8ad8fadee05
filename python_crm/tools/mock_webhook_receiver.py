"""
Mock webhook subscriber for local testing of outbound webhooks.

Verifies X-Webhook-Signature against WEBHOOK_SECRET (if set) and keeps the
deliveries it received in memory.

Endpoints:
- POST /hook        -> records the delivery, 200 if the signature checks out, 401 otherwise
- POST /fail        -> records the delivery, always 500
- GET  /_deliveries -> returns recorded deliveries
- POST /_reset      -> clears recorded deliveries
- GET  /_health     -> returns 200

Usage:
    WEBHOOK_SECRET=a-very-secret-signing-key python tools/mock_webhook_receiver.py 8090
"""
import hashlib
import hmac
import json
import os
import sys
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import List, Optional


DELIVERIES: List[dict] = []


def signature_is_valid(secret: Optional[str], body: bytes, signature: Optional[str]) -> bool:
    """
    Check a signature header the way a subscriber would.

    With no secret configured every delivery is accepted.
    """
    if not secret:
        return True
    if not signature:
        return False
    expected = 'sha256=' + hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


class Handler(BaseHTTPRequestHandler):
    secret: Optional[str] = os.getenv('WEBHOOK_SECRET')

    def _send_json(self, status_code: int, payload) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _record(self) -> dict:
        length = int(self.headers.get("Content-Length", "0"))
        raw = self.rfile.read(length) if length else b""
        try:
            payload = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            payload = {"_raw": raw.decode("utf-8", errors="replace")}

        signature = self.headers.get("X-Webhook-Signature")
        delivery = {
            "path": self.path,
            "headers": {k.lower(): v for k, v in self.headers.items()},
            "payload": payload,
            "signature_valid": signature_is_valid(self.secret, raw, signature),
        }
        DELIVERIES.append(delivery)
        return delivery

    def do_GET(self):  # noqa: N802
        if self.path == "/_health":
            return self._send_json(200, {"status": "ok"})

        if self.path == "/_deliveries":
            return self._send_json(200, {"deliveries": DELIVERIES})

        return self._send_json(404, {"error": "not_found"})

    def do_POST(self):  # noqa: N802
        if self.path == "/_reset":
            DELIVERIES.clear()
            return self._send_json(200, {"status": "reset"})

        if self.path == "/hook":
            delivery = self._record()
            if not delivery["signature_valid"]:
                return self._send_json(401, {"error": "invalid_signature"})
            return self._send_json(200, {"status": "received"})

        if self.path == "/fail":
            self._record()
            return self._send_json(500, {"error": "subscriber_down"})

        return self._send_json(404, {"error": "not_found"})

    def log_message(self, format, *args):  # noqa: A003
        # Silence default logging to keep test output clean.
        return


def main() -> None:
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8090
    server = HTTPServer(("0.0.0.0", port), Handler)
    server.serve_forever()


if __name__ == "__main__":
    main()
