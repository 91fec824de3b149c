"""HTTP client for target agents."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import httpx
import structlog

from pixell_loader.core.exceptions import RemoteCallError, TargetUnreachableError
from pixell_loader.core.models import Target
from pixell_loader.runtime.base import Operation

logger = structlog.get_logger()


class HttpRuntime:
    """Invoke runtime operations on a remote target agent.

    Artifact bytes go as a raw PUT body to /runtime/files/{name}; every
    other operation is a JSON POST to /runtime/invoke/{operation}.
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        secret: Optional[str] = None,
        client_factory: Optional[Callable[[], httpx.Client]] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.secret = secret
        self._client_factory = client_factory

    def _client(self) -> httpx.Client:
        if self._client_factory is not None:
            return self._client_factory()
        return httpx.Client(timeout=httpx.Timeout(self.timeout_seconds))

    def _headers(self) -> Dict[str, str]:
        if self.secret:
            return {"Authorization": f"Bearer {self.secret}"}
        return {}

    def invoke(self, target: Target, operation: Operation, args: Dict[str, Any]) -> Any:
        if target.url is None:
            raise RemoteCallError("no_address", f"Target {target} has no agent URL")
        base = str(target.url).rstrip("/")
        operation = Operation(operation)

        logger.debug("Remote call", target=str(target), operation=operation.value)
        try:
            with self._client() as client:
                if operation == Operation.WRITE_FILE:
                    resp = client.put(
                        f"{base}/runtime/files/{quote(args['name'], safe='')}",
                        content=args["content"],
                        headers=self._headers(),
                    )
                else:
                    resp = client.post(
                        f"{base}/runtime/invoke/{operation.value}",
                        json=args,
                        headers=self._headers(),
                    )
        except httpx.TimeoutException as e:
            raise TargetUnreachableError("timeout", f"Target {target} timed out on {operation.value}") from e
        except httpx.TransportError as e:
            raise TargetUnreachableError("unreachable", f"Target {target} unreachable: {e}") from e
        except httpx.RequestError as e:
            raise RemoteCallError("bad_response", f"Bad response from {target} on {operation.value}: {e}") from e

        if resp.status_code >= 400:
            reason, message = _error_details(resp)
            logger.warning(
                "Remote call rejected",
                target=str(target),
                operation=operation.value,
                status_code=resp.status_code,
                reason=reason,
            )
            raise RemoteCallError(reason, message)

        try:
            payload = resp.json()
        except ValueError as e:
            raise RemoteCallError("bad_response", f"Target {target} did not answer as an agent: {e}") from e
        if not isinstance(payload, dict):
            raise RemoteCallError("bad_response", f"Target {target} returned {type(payload).__name__}, expected an object")
        return payload.get("result")


def _error_details(resp: httpx.Response) -> tuple[str, str]:
    try:
        payload = resp.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    reason = payload.get("reason") or f"http_{resp.status_code}"
    message = payload.get("message") or resp.text or reason
    return str(reason), str(message)
