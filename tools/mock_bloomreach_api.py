"""
Lightweight mock Bloomreach API for end-to-end testing.

Endpoints:
- POST /track/v2/projects/<project>/customers/events      -> records event, returns 200
- POST /track/v2/projects/<project>/customers             -> records profile update, returns 200
- POST /data/v2/projects/<project>/customers/attributes   -> consent lookup result
- GET  /_requests                                         -> every recorded request
- POST /_reset                                            -> clears recorded requests and consents
- GET  /_health                                           -> returns 200

A tracked "consent" event with action=accept grants that consent, so a
later attribute read for the same customer reports it.
"""
import json
import re
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import List, Set, Tuple


REQUESTS: List[dict] = []
GRANTED_CONSENTS: Set[Tuple[str, str]] = set()

EVENTS_PATH = re.compile(r'^/track/v2/projects/[^/]+/customers/events$')
PROFILE_PATH = re.compile(r'^/track/v2/projects/[^/]+/customers$')
ATTRIBUTES_PATH = re.compile(r'^/data/v2/projects/[^/]+/customers/attributes$')


def reset() -> None:
    REQUESTS.clear()
    GRANTED_CONSENTS.clear()


class Handler(BaseHTTPRequestHandler):
    def _send_json(self, status_code: int, payload: dict) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json(self) -> dict:
        length = int(self.headers.get("Content-Length", "0"))
        raw = self.rfile.read(length).decode("utf-8") if length else ""
        try:
            return json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            return {"_raw": raw}

    def do_GET(self):  # noqa: N802
        if self.path == "/_health":
            return self._send_json(200, {"status": "ok"})

        if self.path == "/_requests":
            return self._send_json(200, {"requests": REQUESTS})

        return self._send_json(404, {"error": "not_found"})

    def do_POST(self):  # noqa: N802
        if self.path == "/_reset":
            reset()
            return self._send_json(200, {"status": "reset"})

        payload = self._read_json()
        email = (payload.get("customer_ids") or {}).get("email", "")
        record = {
            "path": self.path,
            "headers": {k.lower(): v for k, v in self.headers.items()},
            "payload": payload,
        }

        if EVENTS_PATH.match(self.path):
            REQUESTS.append(record)
            properties = payload.get("properties") or {}
            if payload.get("event_type") == "consent" and properties.get("action") == "accept":
                GRANTED_CONSENTS.add((email, properties.get("category", "")))
            return self._send_json(200, {"success": True})

        if PROFILE_PATH.match(self.path):
            REQUESTS.append(record)
            return self._send_json(200, {"success": True})

        if ATTRIBUTES_PATH.match(self.path):
            REQUESTS.append(record)
            results = [
                {"success": True, "value": (email, attribute.get("category", "")) in GRANTED_CONSENTS}
                for attribute in payload.get("attributes") or []
            ]
            return self._send_json(200, {"success": True, "results": results})

        return self._send_json(404, {"error": "not_found"})

    def log_message(self, format, *args):  # noqa: A003
        # Silence default logging to keep test output clean.
        return


def start_in_thread(host: str = "127.0.0.1", port: int = 0) -> HTTPServer:
    """Start the mock on a background thread; port 0 picks a free port."""
    server = HTTPServer((host, port), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


def main() -> None:
    server = HTTPServer(("0.0.0.0", 8080), Handler)
    server.serve_forever()


if __name__ == "__main__":
    main()
