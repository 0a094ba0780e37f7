import asyncio
import json
import logging
import time
from enum import Enum
from typing import Dict, Iterable, Optional, Set, Tuple, Union

import httpx

from reqdeck.core.bus import ChannelClosed, Sender
from reqdeck.models import BodyKind, Request, RequestMethod, Response

logger = logging.getLogger(__name__)

# fixed per-header overhead: ": " separator plus CRLF
HEADER_OVERHEAD = 4


class ContentType(Enum):
    TEXT_PLAIN = "text/plain"
    TEXT_HTML = "text/html"
    TEXT_CSS = "text/css"
    TEXT_JAVASCRIPT = "text/javascript"
    APPLICATION_JSON = "application/json"
    APPLICATION_XML = "application/xml"

    @classmethod
    def from_header(cls, value: Optional[str]) -> Optional["ContentType"]:
        value = (value or "").lower()
        for content_type in cls:
            if content_type.value in value:
                return content_type
        if value.endswith("+json") or "+json;" in value:
            return cls.APPLICATION_JSON
        return None


def measure_headers(pairs: Iterable[Tuple[Union[str, bytes], Union[str, bytes]]]) -> int:
    return sum(len(name) + len(value) + HEADER_OVERHEAD for name, value in pairs)


# --- Decoders ---

class ResponseDecoder:
    """Turns a streamed httpx response into a finished ``Response``."""

    def pretty(self, body: str) -> str:
        return body

    async def decode(self, request_id: str, response: httpx.Response, start: float) -> Response:
        raw = await response.aread()
        duration = time.perf_counter() - start

        headers_size = measure_headers(response.headers.raw)
        body_size = len(raw)

        body = None
        pretty_body = None
        if raw:
            body = response.text
            try:
                pretty_body = self.pretty(body)
            except Exception as ex:
                logger.debug("could not pretty print response body: %s", ex)
                pretty_body = ""

        return Response(
            request_id=request_id,
            body=body,
            pretty_body=pretty_body,
            headers=tuple(response.headers.items()),
            status=response.status_code,
            duration=duration,
            headers_size=headers_size,
            body_size=body_size,
            total_size=headers_size + body_size,
            is_error=False,
            cause=None,
        )


class JsonDecoder(ResponseDecoder):
    def pretty(self, body: str) -> str:
        return json.dumps(json.loads(body), indent=2, ensure_ascii=False)


class TextDecoder(ResponseDecoder):
    pass


DECODERS: Dict[ContentType, ResponseDecoder] = {
    ContentType.APPLICATION_JSON: JsonDecoder(),
    ContentType.APPLICATION_XML: TextDecoder(),
    ContentType.TEXT_PLAIN: TextDecoder(),
    ContentType.TEXT_HTML: TextDecoder(),
    ContentType.TEXT_CSS: TextDecoder(),
    ContentType.TEXT_JAVASCRIPT: TextDecoder(),
}
DEFAULT_DECODER = DECODERS[ContentType.APPLICATION_JSON]


def decoder_from_headers(headers: httpx.Headers) -> ResponseDecoder:
    content_type = ContentType.from_header(headers.get("content-type"))
    return DECODERS.get(content_type, DEFAULT_DECODER)


# --- Strategies ---

class RequestStrategy:
    async def handle(self, request: Request) -> Response:
        raise NotImplementedError


class HttpStrategy(RequestStrategy):
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30.0):
        self.transport = transport
        self.timeout = timeout

    def _build(self, client: httpx.AsyncClient, request: Request) -> httpx.Request:
        headers = request.enabled_headers()
        content = None
        if request.body_kind == BodyKind.JSON and request.method != RequestMethod.GET:
            content = request.body
            if not any(name.lower() == "content-type" for name, _ in headers):
                headers.append(("Content-Type", "application/json"))
        return client.build_request(
            method=request.method.value,
            url=request.uri,
            headers=headers,
            content=content,
        )

    async def handle(self, request: Request) -> Response:
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                outgoing = self._build(client, request)
                response = await client.send(outgoing, stream=True)
                try:
                    decoder = decoder_from_headers(response.headers)
                    return await decoder.decode(request.id, response, start)
                finally:
                    await response.aclose()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            cause = str(e) or e.__class__.__name__
            logger.info("request %s failed: %s", request.id, cause)
            return Response(
                request_id=request.id,
                duration=time.perf_counter() - start,
                is_error=True,
                cause=cause,
            )


# --- Runner ---

class RequestRunner:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30.0):
        http = HttpStrategy(transport=transport, timeout=timeout)
        # closed table: one entry per body kind
        self.strategies: Dict[BodyKind, RequestStrategy] = {
            BodyKind.NO_BODY: http,
            BodyKind.JSON: http,
        }
        self._tasks: Set[asyncio.Task] = set()

    def strategy_for(self, body_kind: BodyKind) -> RequestStrategy:
        return self.strategies[body_kind]

    async def execute(self, request: Request) -> Response:
        return await self.strategy_for(request.body_kind).handle(request)

    def handle_request(self, request: Request, results: Sender[Response]) -> asyncio.Task:
        """Run ``request`` on its own task and send exactly one response to ``results``."""
        task = asyncio.get_running_loop().create_task(self._run(request, results))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, request: Request, results: Sender[Response]) -> None:
        start = time.perf_counter()
        try:
            response = await self.execute(request)
        except Exception as e:
            # e.g. a header value httpx cannot encode: still answer the request
            logger.exception("request %s crashed", request.id)
            response = Response(
                request_id=request.id,
                duration=time.perf_counter() - start,
                is_error=True,
                cause=f"{e.__class__.__name__}: {e}",
            )
        try:
            results.send(response)
        except ChannelClosed:
            # receiver is gone: the app is shutting down
            logger.debug("dropping response for %s, result channel closed", request.id)
