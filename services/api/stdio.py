"""Line-delimited JSON tool transport over stdin/stdout.

Request:  {"id": 1, "tool": "search_company", "arguments": {"query": "jkh"}}
Response: {"id": 1, "content": [{"type": "text", "text": "..."}], "isError": false}

One request per line, one response per line. Logging goes to stderr.
"""

from __future__ import annotations
from typing import Any, Dict, TextIO
import json
import sys

from services.api.tools import ToolNotFoundError, ToolRegistry, build_registry
from services.catalog.loader import CatalogLoadError, load_companies
from services.config.logging import get_logger

logger = get_logger(__name__)


def _error(req_id: Any, message: str) -> Dict[str, Any]:
    return {"id": req_id, "content": [{"type": "text", "text": message}], "isError": True}


def handle_line(registry: ToolRegistry, line: str) -> Dict[str, Any]:
    try:
        req = json.loads(line)
    except ValueError:
        return _error(None, "Malformed request: not valid JSON")
    if not isinstance(req, dict) or not isinstance(req.get("tool"), str):
        return _error(None, "Malformed request: 'tool' is required")
    req_id = req.get("id")
    args = req.get("arguments") or {}
    if not isinstance(args, dict):
        return _error(req_id, "Malformed request: 'arguments' must be an object")
    try:
        result = registry.call(req["tool"], args)
    except ToolNotFoundError:
        return _error(req_id, f"Unknown tool: {req['tool']}")
    return {"id": req_id, **result.as_content()}


def serve(registry: ToolRegistry, stdin: TextIO, stdout: TextIO) -> int:
    handled = 0
    for line in stdin:
        if not line.strip():
            continue
        resp = handle_line(registry, line)
        stdout.write(json.dumps(resp) + "\n")
        stdout.flush()
        handled += 1
    return handled


def main() -> int:
    try:
        catalog = load_companies()
    except CatalogLoadError as e:
        logger.error("Error loading companies: %s", e)
        return 1
    logger.info("CSE tool server running on stdio")
    serve(build_registry(catalog), sys.stdin, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
