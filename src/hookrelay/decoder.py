"""Request decoding: headers and body to delivery fields.

Extracts the event name, delivery id, signature and payload text from a
webhook request, independent of whether the body is JSON or a
form-encoded body that carries the JSON in its ``payload`` field.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from urllib.parse import parse_qsl

from hookrelay.exceptions import MissingEventHeaderError, UnsupportedContentTypeError
from hookrelay.logging import get_logger
from hookrelay.models import ContentType, DecodedFields, ProviderProfile, detect_provider
from hookrelay.normalizer import normalize_event

logger = get_logger(__name__)

# Form field that carries the JSON payload in form-encoded deliveries
FORM_PAYLOAD_FIELD = "payload"

HeaderSource = Mapping[str, str] | Iterable[tuple[str, str]]


class HeaderMap(Mapping[str, str]):
    """Read-only, case-insensitive view of request headers.

    Keys are stored lowercase. When a header repeats, the last value wins.

    Example:
        >>> headers = HeaderMap({"X-GitHub-Event": "push"})
        >>> headers["x-github-event"]
        'push'
    """

    def __init__(self, headers: HeaderSource | None = None) -> None:
        self._headers: dict[str, str] = {}
        if headers is None:
            return
        items = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in items:
            self._headers[name.lower()] = value

    def __getitem__(self, name: str) -> str:
        return self._headers[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"HeaderMap({self._headers!r})"


def parse_content_type(content_type: str | None) -> ContentType | None:
    """Resolve a Content-Type value to a supported encoding.

    Parameters such as ``charset`` are ignored. A missing content type is
    treated as JSON.

    Returns:
        The matching ContentType, or None if the type is not supported.
    """
    if content_type is None:
        return ContentType.JSON
    media_type = content_type.split(";", 1)[0].strip().lower()
    if not media_type:
        return ContentType.JSON
    for candidate in ContentType:
        if candidate.value == media_type:
            return candidate
    return None


def _first_header(headers: Mapping[str, str], names: Iterable[str]) -> str | None:
    for name in names:
        value = headers.get(name)
        if value:
            return value
    return None


def _decode_text(body: bytes) -> str | None:
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("Request body is not valid UTF-8", size=len(body))
        return None


def _form_payload(body: bytes) -> str | None:
    text = _decode_text(body)
    if text is None:
        return None
    for key, value in parse_qsl(text, keep_blank_values=True):
        if key == FORM_PAYLOAD_FIELD:
            return value
    logger.debug("Form-encoded body has no payload field")
    return None


def decode(
    content_type: str | None,
    headers: HeaderSource,
    body: bytes,
    provider: ProviderProfile | None = None,
    support_form_encoded: bool = True,
) -> DecodedFields:
    """Extract delivery fields from a webhook request.

    Args:
        content_type: Declared Content-Type of the request.
        headers: Request headers (any case).
        body: Raw request body.
        provider: Provider dialect; detected from the headers if None.
        support_form_encoded: Accept ``application/x-www-form-urlencoded``.

    Returns:
        The decoded fields, with the event name normalized.

    Raises:
        MissingEventHeaderError: No event name could be found.
        UnsupportedContentTypeError: The content type is not accepted.
    """
    header_map = headers if isinstance(headers, HeaderMap) else HeaderMap(headers)

    if provider is None:
        provider = detect_provider(header_map)
        if provider is None:
            raise MissingEventHeaderError(None)

    table = provider.headers
    raw_event = header_map.get(table.event, "").strip()
    if not raw_event:
        raise MissingEventHeaderError(table.event)

    kind = parse_content_type(content_type)
    if kind is None or (kind is ContentType.FORM and not support_form_encoded):
        raise UnsupportedContentTypeError(content_type or "")

    if kind is ContentType.FORM:
        payload_text = _form_payload(body)
    else:
        payload_text = _decode_text(body)

    delivery_id = header_map.get(table.delivery_id) if table.delivery_id else None

    return DecodedFields(
        provider=provider,
        content_type=kind,
        raw_event=raw_event,
        event=normalize_event(provider, raw_event),
        delivery_id=delivery_id or None,
        signature=_first_header(header_map, table.signature),
        body=body,
        payload_text=payload_text,
    )
