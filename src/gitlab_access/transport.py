"""Concurrent delivery of webhook payloads to plugin endpoints."""

import asyncio
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

import httpx

from .errors import ForwardError, InvalidEndpointError

logger = logging.getLogger(__name__)

# Headers describing the inbound connection rather than the event.
CONNECTION_HEADERS = {"host", "content-length", "transfer-encoding", "connection"}

HeaderItems = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def outbound_headers(inbound: HeaderItems, user_agent: str) -> httpx.Headers:
    """Copy the inbound headers for forwarding, overriding the User-Agent."""
    items = inbound.items() if isinstance(inbound, Mapping) else inbound
    headers = httpx.Headers(
        [(k, v) for k, v in items if k.lower() not in CONNECTION_HEADERS]
    )
    headers["User-Agent"] = user_agent
    return headers


class ForwardingClient:
    """POSTs prepared requests with a bounded number of attempts."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_attempts: int = 3,
        retry_delay: float = 0.1,
    ):
        self._client = client
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    def build_request(self, endpoint: str, payload: bytes, headers: httpx.Headers) -> httpx.Request:
        """Prepare a POST of ``payload`` to ``endpoint``.

        Raises:
            InvalidEndpointError: If the endpoint is not an absolute http(s) URL.
        """
        try:
            url = httpx.URL(endpoint)
        except httpx.InvalidURL as e:
            raise InvalidEndpointError(endpoint, str(e)) from e

        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidEndpointError(endpoint, "must be an absolute http(s) URL")

        return self._client.build_request("POST", url, content=payload, headers=headers)

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send a request, retrying on transport errors and non-2xx responses.

        The delay between attempts doubles after each failure.

        Raises:
            ForwardError: If every attempt failed.
        """
        last_error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            try:
                response = await self._client.send(request)
                response.raise_for_status()
                return response
            except httpx.HTTPError as e:
                last_error = e
                logger.debug(f"Forward attempt {attempt + 1} to {request.url} failed: {e}")

            if attempt < self.max_attempts - 1:
                await asyncio.sleep(self.retry_delay * 2**attempt)

        raise ForwardError(str(request.url), self.max_attempts, last_error)


class InFlightTracker:
    """Counts outstanding deliveries so shutdown can wait for them."""

    def __init__(self) -> None:
        self._count = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def count(self) -> int:
        return self._count

    def add(self) -> None:
        self._count += 1
        self._idle.clear()

    def done(self) -> None:
        if self._count == 0:
            raise RuntimeError("done() called more times than add()")
        self._count -= 1
        if self._count == 0:
            self._idle.set()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until no deliveries are outstanding.

        Args:
            timeout: Give up after this many seconds; None waits forever.

        Returns:
            False if the timeout expired first.
        """
        if timeout is None:
            await self._idle.wait()
            return True
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False


class FanOut:
    """Forwards one payload to many endpoints at once.

    Every endpoint gets its own task; a failing endpoint is logged and does
    not affect the others. Nothing is reported back to the caller beyond
    the tasks themselves.
    """

    def __init__(
        self,
        forwarder: ForwardingClient,
        user_agent: str = "Robot-Gitlab-Access",
        tracker: Optional[InFlightTracker] = None,
    ):
        self.forwarder = forwarder
        self.user_agent = user_agent
        self.tracker = tracker or InFlightTracker()
        self._tasks: Set[asyncio.Task] = set()

    def forward(
        self,
        endpoints: Iterable[str],
        payload: bytes,
        headers: HeaderItems,
        log: Union[logging.Logger, logging.LoggerAdapter] = logger,
    ) -> List[asyncio.Task]:
        """Start delivering ``payload`` to every endpoint.

        Must be called from a running event loop.

        Returns:
            The delivery tasks, one per distinct endpoint that produced a valid request.
        """
        out_headers = outbound_headers(headers, self.user_agent)

        # Requests are built up front so a bad endpoint is reported before
        # anything is sent.
        requests: Dict[str, httpx.Request] = {}
        for endpoint in endpoints:
            try:
                requests[endpoint] = self.forwarder.build_request(endpoint, payload, out_headers)
            except InvalidEndpointError as e:
                log.error(f"Error generating http request for endpoint:{endpoint}, err:{e}")

        tasks = []
        for endpoint, request in requests.items():
            self.tracker.add()
            task = asyncio.create_task(self._deliver(endpoint, request, log))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)

        return tasks

    async def _deliver(
        self,
        endpoint: str,
        request: httpx.Request,
        log: Union[logging.Logger, logging.LoggerAdapter],
    ) -> None:
        try:
            await self.forwarder.send(request)
            log.debug(f"Forwarded event to endpoint:{endpoint}")
        except Exception as e:
            log.error(f"Error forwarding event to endpoint:{endpoint}, err:{e}")
        finally:
            self.tracker.done()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for every delivery started so far to finish."""
        return await self.tracker.wait(timeout)

    async def cancel(self) -> int:
        """Cancel the deliveries still running and wait for them to unwind.

        Returns:
            The number of deliveries cancelled.
        """
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)
