from __future__ import annotations
from typing import Any, Optional
from flask import Flask, current_app, request, jsonify

import os
import time
import threading
import json
from collections import deque, defaultdict
from pathlib import Path

from services.api.tools import ToolNotFoundError, build_registry
from services.catalog.loader import load_companies
from services.config.logging import get_logger
from services.exports.payloads import search_payload
from services.resolver.core import Catalog, search

logger = get_logger(__name__)

OPENAPI_PATH = Path(__file__).resolve().parent / "openapi.json"
_PROTECTED_PREFIXES = ("/tools", "/companies")

# Configuration helpers (overridable via app.config in tests)

def _get_api_key() -> str | None:
    if 'API_KEY' in current_app.config:
        return current_app.config.get('API_KEY')
    return os.environ.get('API_KEY')


def _get_rate_limit() -> tuple[int, float]:
    n = current_app.config.get('RATE_LIMIT_N')
    w = current_app.config.get('RATE_LIMIT_WINDOW_SEC')
    if n is None:
        n = int(os.environ.get('RATE_LIMIT_N', '30'))
    if w is None:
        w = float(os.environ.get('RATE_LIMIT_WINDOW_SEC', '1.0'))
    return int(n), float(w)


def _new_rate_limit_state() -> dict:
    # Per-app request history, keyed by client IP
    return {'lock': threading.Lock(), 'recent': defaultdict(lambda: deque(maxlen=100))}


def _client_ip() -> str:
    xff = request.headers.get('X-Forwarded-For')
    if xff:
        return xff.split(',')[0].strip()
    return request.remote_addr or 'anon'


def _check_api_key():
    api_key = _get_api_key()
    if api_key:
        provided = request.headers.get('X-API-Key')
        if provided != api_key:
            return jsonify({'error': 'unauthorized'}), 401
    return None


def _check_rate_limit(ip: str):
    # Allow if rate limiting disabled or N <= 0
    n, window = _get_rate_limit()
    if n <= 0:
        return None
    state = current_app.extensions['rate_limit']
    with state['lock']:
        now = time.time()
        recent = state['recent']
        # Forget clients with nothing inside the window
        for stale in [k for k, q in recent.items() if not q or now - q[-1] > window]:
            del recent[stale]
        dq = recent[ip]
        # Drop old entries outside window
        while dq and now - dq[0] > window:
            dq.popleft()
        if len(dq) >= n:
            retry = max(0.0, window - (now - dq[0]))
            resp = jsonify({'error': 'rate_limited'})
            resp.status_code = 429
            resp.headers['Retry-After'] = f"{retry:.2f}"
            return resp
        dq.append(now)
    return None


def _auth_and_rate_limit():
    # Only enforce for API routes; health and openapi stay open
    if request.path.startswith(_PROTECTED_PREFIXES):
        unauthorized = _check_api_key()
        if unauthorized is not None:
            return unauthorized
        rl = _check_rate_limit(_client_ip())
        if rl is not None:
            return rl
    return None


def create_app(catalog: Optional[Catalog] = None, session: Any = None) -> Flask:
    """Build the HTTP host around one catalog.

    The catalog is loaded once here (from CSE_CATALOG_PATH when not given)
    and only read afterwards, so request threads share it without locking.
    """
    if catalog is None:
        catalog = load_companies()
    registry = build_registry(catalog, session=session)
    logger.info("Serving %d companies", len(catalog))

    app = Flask(__name__)
    app.extensions['rate_limit'] = _new_rate_limit_state()
    app.before_request(_auth_and_rate_limit)

    @app.get('/health')
    def health():
        return jsonify({'status': 'ok', 'companies': len(catalog)})

    @app.get('/tools')
    def list_tools():
        return jsonify({'tools': registry.list_tools()})

    @app.post('/tools/<name>')
    def call_tool(name: str):
        payload = request.get_json(force=True, silent=True) or {}
        args = payload.get('arguments', payload) if isinstance(payload, dict) else {}
        if not isinstance(args, dict):
            return jsonify({'error': 'arguments must be an object'}), 400
        try:
            result = registry.call(name, args)
        except ToolNotFoundError:
            return jsonify({'error': 'tool_not_found'}), 404
        return jsonify(result.as_content())

    @app.get('/companies/search')
    def search_companies():
        q = request.args.get('q')
        if not q:
            return jsonify({'error': 'q is required'}), 400
        return jsonify(search_payload(q, search(catalog, q)))

    @app.get('/openapi.json')
    def get_openapi():
        try:
            spec = json.loads(OPENAPI_PATH.read_text())
        except (OSError, ValueError):
            return jsonify({'error': 'openapi_not_found'}), 404
        return jsonify(spec)

    return app


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=8000)
