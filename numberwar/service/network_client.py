"""
Network Client - HTTP communication with the NumberWar node
"""
from typing import Any, Dict, Optional

import httpx

from numberwar.config import NETWORK_CONFIG
from numberwar.errors import LEDGER_REJECTIONS, ServiceUnavailable


async def check_node_health(node_url: str = None, transport: httpx.AsyncBaseTransport = None) -> bool:
    """
    Check if a node is up and has a deployed ledger.

    Returns:
        True if healthy, False otherwise
    """
    try:
        async with httpx.AsyncClient(
            base_url=node_url or NETWORK_CONFIG["node_url"],
            timeout=5,
            transport=transport,
        ) as client:
            response = await client.get("/health")
            response.raise_for_status()
            return bool(response.json().get("ready"))
    except (httpx.HTTPError, ValueError):
        return False


class NodeNetworkClient:
    """
    Base JSON client for the node API.

    `transport` lets tests route requests straight into the ASGI app.
    Errors are translated to the NumberWar taxonomy:
        409 with a ledger error name -> InvalidRound / InvalidInput
        anything else unusable       -> ServiceUnavailable
    """

    def __init__(
        self,
        node_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.node_url = (node_url or NETWORK_CONFIG["node_url"]).rstrip("/")
        self.timeout = timeout or NETWORK_CONFIG["connection_timeout"]
        self.transport = transport
        self._deployment: Optional[Dict[str, Any]] = None

    async def _request(
        self,
        method: str,
        path: str,
        json: Dict[str, Any] = None,
        timeout: float = None,
    ) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.node_url,
                timeout=timeout or self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.HTTPError as e:
            print(f"[Network] {method} {path} failed: {e!r}")
            raise ServiceUnavailable(f"Node unreachable: {e}") from e

        if response.status_code >= 400:
            raise self._translate_error(response)

        try:
            data = response.json()
        except ValueError as e:
            raise ServiceUnavailable("Malformed response from node", status_code=response.status_code) from e
        if not isinstance(data, dict):
            raise ServiceUnavailable("Malformed response from node", status_code=response.status_code)
        return data

    @staticmethod
    def _translate_error(response: httpx.Response) -> Exception:
        try:
            body = response.json()
        except ValueError:
            body = None
        detail = body.get("detail") if isinstance(body, dict) else None

        if response.status_code == 409 and isinstance(detail, dict):
            rejection = LEDGER_REJECTIONS.get(detail.get("error"))
            if rejection is not None:
                return rejection(detail.get("message") or rejection.__doc__, details=detail)

        message = detail if isinstance(detail, str) else f"HTTP {response.status_code}"
        return ServiceUnavailable(message, status_code=response.status_code, details={"detail": detail})

    async def get(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self._request("GET", path, **kwargs)

    async def post(self, path: str, json: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        return await self._request("POST", path, json=json, **kwargs)

    async def info(self) -> Dict[str, Any]:
        """Deployed addresses and chain id"""
        return await self.get("/v1/info")

    async def deployment(self) -> Dict[str, Any]:
        """Cached /v1/info (addresses do not change for a running node)"""
        if self._deployment is None:
            self._deployment = await self.info()
        return self._deployment
