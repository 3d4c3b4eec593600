"""
Minimal line-delimited JSON-RPC worker for integration tests.

Speaks just enough of the agent worker protocol for the gateway: the session
handshake, a two-page status directory, one resource read shape, threads, and
a couple of test-only methods.
"""

import json
import sys

SERVERS = [
    {
        "name": "figma",
        "tools": {
            "figma.generate_diagram": {
                "name": "figma.generate_diagram",
                "_meta": {"openai/outputTemplate": "ui://widget/diagram.html", "connector_name": "Figma"},
            }
        },
        "resources": [{"uri": "ui://widget/diagram.html"}],
        "resourceTemplates": [],
    },
    {"name": "github", "tools": {}, "resources": [], "resourceTemplates": []},
]


def write(message):
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def reply(request_id, result):
    write({"id": request_id, "result": result})


def fail(request_id, code, message):
    write({"id": request_id, "error": {"code": code, "message": message}})


def handle(message):
    method = message.get("method")
    request_id = message.get("id")
    params = message.get("params") or {}

    if request_id is None:
        if method == "initialized":
            write({"method": "account/updated", "params": {"authMode": "test"}})
        return

    if method == "initialize":
        reply(request_id, {"userAgent": "stdio-worker"})
    elif method == "mcpServerStatus/list":
        if params.get("cursor") is None:
            reply(request_id, {"data": SERVERS[:1], "nextCursor": "page-2"})
        else:
            reply(request_id, {"data": SERVERS[1:], "nextCursor": None})
    elif method == "mcpServer/resource/read" and "name" in params:
        reply(
            request_id,
            {"resource": {"uri": params["uri"], "_meta": {"openai/widgetDomain": "https://figma.com"}}, "contents": [{"text": "<html></html>"}]},
        )
    elif method == "thread/start":
        reply(request_id, {"thread": {"id": "thr_integration"}})
        write(
            {
                "method": "item/completed",
                "params": {
                    "threadId": "thr_integration",
                    "item": {
                        "type": "mcpToolCall",
                        "server": "figma",
                        "tool": "figma.generate_diagram",
                        "result": {"content": [{"text": "https://www.figma.com/board/integration"}]},
                    },
                },
            }
        )
    elif method == "worker/large":
        reply(request_id, {"blob": "x" * params.get("size", 0)})
    elif method == "worker/exit":
        sys.stderr.write("exiting on request\n")
        sys.stderr.flush()
        sys.exit(3)
    else:
        fail(request_id, -32601, f"Method not found: {method}")


def main():
    sys.stdout.write("stdio-worker starting\n")
    sys.stdout.flush()
    sys.stderr.write("stdio-worker ready\n")
    sys.stderr.flush()

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        handle(json.loads(line))


if __name__ == "__main__":
    main()
