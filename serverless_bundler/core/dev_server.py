"""
Where: serverless_bundler/core/dev_server.py
What: Dev-server middleware that renders serverless URLs locally.
Why: Let the live-reload server answer dynamic URLs with the packaged handler.
"""

import base64
import importlib.util
import inspect
import logging
import sys
import threading
import time
from pathlib import Path
from types import ModuleType
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Request, Response

logger = logging.getLogger("serverless_bundler.dev_server")

CallNext = Callable[[Request], Awaitable[Response]]


class ReloadableModule:
    """
    Handle on a module file that is loaded fresh on every ``load()``.

    Every module previously imported from under ``isolation_root`` (the
    module's own directory by default) is evicted from ``sys.modules`` first,
    so edits to helpers are picked up and sibling bundles never share a
    cached module. The module directory sits on ``sys.path`` only while the
    module executes.
    """

    def __init__(
        self,
        module_path: Path,
        module_name: str = "serverless_index",
        isolation_root: Optional[Path] = None,
    ):
        self.module_path = Path(module_path).resolve()
        self.module_name = module_name
        self.isolation_root = Path(isolation_root).resolve() if isolation_root else self.root
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self.module_path.parent

    def _evict(self) -> None:
        for name, module in list(sys.modules.items()):
            module_file = getattr(module, "__file__", None)
            if not module_file:
                continue
            try:
                Path(module_file).resolve().relative_to(self.isolation_root)
            except ValueError:
                continue
            del sys.modules[name]

    def load(self) -> ModuleType:
        with self._lock:
            self._evict()
            spec = importlib.util.spec_from_file_location(self.module_name, self.module_path)
            if spec is None or spec.loader is None:
                raise ImportError(f"Cannot load serverless module: {self.module_path}")

            root = str(self.root)
            module = importlib.util.module_from_spec(spec)
            sys.modules[self.module_name] = module
            sys.path.insert(0, root)
            try:
                spec.loader.exec_module(module)
            except BaseException:
                sys.modules.pop(self.module_name, None)
                raise
            finally:
                sys.path.remove(root)
            return module


def build_invocation_event(request: Request) -> Dict[str, Any]:
    """
    Build the event handed to the packaged handler.
    """
    return {
        "httpMethod": "GET",
        "path": request.url.path,
        "queryStringParameters": dict(request.query_params),
    }


async def invoke_handler(module: ModuleType, event: Dict[str, Any]) -> Dict[str, Any]:
    result = module.handler(event, None)
    if inspect.isawaitable(result):
        result = await result
    return result or {}


def _response_from_result(result: Dict[str, Any]) -> Response:
    body = result.get("body") or ""
    if result.get("isBase64Encoded"):
        content: Any = base64.b64decode(body)
    else:
        content = body
    return Response(
        content=content,
        status_code=int(result.get("statusCode", 200)),
        headers={str(k): str(v) for k, v in (result.get("headers") or {}).items()},
    )


def create_dev_server_middleware(entry_module: ReloadableModule):
    """
    Return an ``async (request, call_next)`` middleware for FastAPI/Starlette.

    A 404 from the handler falls through to the next handler (static files).
    Exceptions from the packaged module propagate to the server.
    """

    async def serverless_middleware(request: Request, call_next: CallNext) -> Response:
        start_time = time.perf_counter()

        module = entry_module.load()
        result = await invoke_handler(module, build_invocation_event(request))

        if int(result.get("statusCode", 200)) == 404:
            return await call_next(request)

        response = _response_from_result(result)

        latency_ms = round((time.perf_counter() - start_time) * 1000, 2)
        url = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        logger.info(
            f"Dynamic Render: {url} ({latency_ms}ms)",
            extra={
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": latency_ms,
            },
        )
        return response

    return serverless_middleware
