"""Stdio tool server.

Speaks newline-delimited JSON-RPC 2.0: one message per line on stdin, one
response per line on stdout. Logging goes to stderr so the protocol stream
stays clean.
"""

import json
import logging
import sys
from typing import Any

import anyio
from anyio import AsyncFile

from .dispatch import Dispatcher
from .errors import UnknownToolError
from .providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class RpcError(Exception):
    """Error reported to the client as a JSON-RPC error object."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ToolServer:
    """Expose the registry's tools over stdio.

    Args:
        dispatcher: Executes tools/call requests
        registry: Source of the tools/list descriptors
        name: Server name reported by initialize
        version: Server version reported by initialize
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        registry: ProviderRegistry,
        name: str = "switchyard",
        version: str = "0.1.0",
    ) -> None:
        self.dispatcher = dispatcher
        self.registry = registry
        self.name = name
        self.version = version
        self._write_lock = anyio.Lock()

    async def serve(
        self,
        reader: AsyncFile | None = None,
        writer: AsyncFile | None = None,
    ) -> None:
        """Serve until the input stream closes.

        Each request runs in its own task; responses are written as they
        complete, so they may be out of order relative to the requests.
        """
        reader = reader or anyio.wrap_file(sys.stdin)
        writer = writer or anyio.wrap_file(sys.stdout)
        logger.info("%s %s serving on stdio", self.name, self.version)

        async with anyio.create_task_group() as tg:
            async for line in reader:
                if not line.strip():
                    continue
                tg.start_soon(self._respond, line, writer)

        logger.info("Input closed, shutting down")

    async def _respond(self, line: str, writer: AsyncFile) -> None:
        response = await self.handle_line(line)
        if response is None:
            return
        async with self._write_lock:
            await writer.write(json.dumps(response, ensure_ascii=False) + "\n")
            await writer.flush()

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        """Handle one raw message. Returns None for notifications."""
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("Unparseable message: %s", e)
            return _error_response(None, PARSE_ERROR, f"Parse error: {e}")
        return await self.handle_message(message)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        if not isinstance(message, dict) or not isinstance(message.get("method"), str):
            return _error_response(
                message.get("id") if isinstance(message, dict) else None,
                INVALID_REQUEST,
                "Invalid request",
            )

        method = message["method"]
        if "id" not in message:
            logger.debug("Ignoring notification: %s", method)
            return None

        request_id = message["id"]
        params = message.get("params") or {}
        if not isinstance(params, dict):
            return _error_response(request_id, INVALID_PARAMS, "Params must be an object")
        try:
            result = await self._dispatch(method, params)
        except RpcError as e:
            return _error_response(request_id, e.code, e.message)
        except UnknownToolError as e:
            return _error_response(request_id, INVALID_PARAMS, e.message)
        except Exception as e:
            logger.exception("Internal error handling %s", method)
            return _error_response(request_id, INTERNAL_ERROR, f"Internal error: {e}")
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def _dispatch(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        if method == "initialize":
            return {
                "protocolVersion": params.get("protocolVersion", PROTOCOL_VERSION),
                "serverInfo": {"name": self.name, "version": self.version},
                "capabilities": {"tools": {}},
            }
        elif method == "ping":
            return {}
        elif method == "tools/list":
            tools = await self.registry.generate_tools()
            return {"tools": [tool.to_dict() for tool in tools]}
        elif method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str):
                raise RpcError(INVALID_PARAMS, "Missing tool name")
            arguments = params.get("arguments") or {}
            if not isinstance(arguments, dict):
                raise RpcError(INVALID_PARAMS, "Tool arguments must be an object")
            result = await self.dispatcher.call(name, arguments)
            return result.to_dict()
        raise RpcError(METHOD_NOT_FOUND, f"Method not found: {method}")


def _error_response(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }
