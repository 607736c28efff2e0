"""Byte-range streaming for stored media.

Parses a single-range ``Range`` header, fits the requested window to the
resource size and builds a partial-content response that pipes exactly that
window from a byte source.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from fastapi.responses import StreamingResponse
from starlette.requests import ClientDisconnect
from starlette.types import Receive, Scope, Send

from config import MissingRangePolicy
from core.errors import (
    MalformedRangeError,
    RangeRequiredError,
    StorageError,
    UnsatisfiableRangeError,
)
from core.utils.logger import get_logger
from core.utils.streaming import ByteSource, range_generator

logger = get_logger("stream")

CHUNK_SIZE = 1_000_000
TRANSFER_CHUNK_SIZE = 64 * 1024

MEDIA_TYPES = {
    ".mp4": "video/mp4",
    ".mkv": "video/x-matroska",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
    ".m4v": "video/x-m4v",
}
DEFAULT_MEDIA_TYPE = "video/mp4"

_DIGITS = re.compile(r"\d+")

OpenSource = Callable[[int, int], ByteSource]


@dataclass(frozen=True)
class RangeSpec:
    """First range specifier of a header, before it is fitted to a size."""

    start: int
    end: int | None = None


@dataclass(frozen=True)
class ByteWindow:
    """Inclusive byte interval that will actually be served."""

    start: int
    end: int
    file_size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.file_size}"


def media_type_for(filename: str) -> str:
    """Content type for a stored video, falling back to MP4."""
    return MEDIA_TYPES.get(Path(filename).suffix.lower(), DEFAULT_MEDIA_TYPE)


def parse_range_header(range_header: str, strict: bool = False) -> RangeSpec:
    """Read the first specifier of a ``bytes=<start>-[<end>]`` header.

    Permissive mode coerces a missing or non-numeric start to 0 and treats a
    non-numeric end as an open end. Strict mode raises instead.

    Args:
        range_header: Raw header value.
        strict: Reject anything that is not ``bytes=<digits>-[<digits>]``.

    Returns:
        The parsed specifier.

    Raises:
        MalformedRangeError: In strict mode, when the header is unreadable.
    """
    value = range_header.strip()
    unit, sep, ranges = value.partition("=")
    if not sep:
        unit, ranges = "", value
    if strict and unit.strip().lower() != "bytes":
        raise MalformedRangeError(f"Unsupported range unit in {range_header!r}")

    # Multiple ranges are not supported; only the first one counts
    first = ranges.split(",", 1)[0].strip()
    start_s, dash, end_s = first.partition("-")
    start_s, end_s = start_s.strip(), end_s.strip()

    if strict and not dash:
        raise MalformedRangeError(f"Missing '-' in {range_header!r}")

    if _DIGITS.fullmatch(start_s):
        start = int(start_s)
    elif strict:
        raise MalformedRangeError(
            f"Missing or non-numeric range start in {range_header!r}"
        )
    else:
        logger.warning(f"Range start {start_s!r} is not a number, using 0")
        start = 0

    end: int | None = None
    if end_s:
        if _DIGITS.fullmatch(end_s):
            end = int(end_s)
        elif strict:
            raise MalformedRangeError(
                f"Non-numeric range end in {range_header!r}"
            )
        else:
            logger.warning(f"Range end {end_s!r} is not a number, ignoring it")
    return RangeSpec(start=start, end=end)


def resolve_window(
    spec: RangeSpec, file_size: int, chunk_size: int = CHUNK_SIZE
) -> ByteWindow:
    """Fit a range specifier to the resource size.

    An open end serves at most ``chunk_size`` bytes; an explicit end is
    clamped to the last byte.

    Raises:
        UnsatisfiableRangeError: If the window falls outside
            ``[0, file_size - 1]`` or is empty.
    """
    last = file_size - 1
    start = spec.start
    if spec.end is None:
        end = min(start + chunk_size - 1, last)
    else:
        end = min(spec.end, last)

    if start < 0 or start > last or start > end:
        raise UnsatisfiableRangeError(
            f"Range {start}-{'' if spec.end is None else spec.end} "
            f"not satisfiable for {file_size} bytes",
            file_size=file_size,
        )
    return ByteWindow(start=start, end=end, file_size=file_size)


class RangeResponse(StreamingResponse):
    """Streaming response that always releases its byte source.

    The source is closed after the body is sent, when the client goes away,
    and when a read or send fails.
    """

    def __init__(
        self,
        source: ByteSource,
        *,
        status_code: int,
        headers: dict[str, str],
        media_type: str,
        transfer_chunk_size: int = TRANSFER_CHUNK_SIZE,
        label: str = "",
    ) -> None:
        self.source = source
        self.label = label
        self.expected_bytes = int(headers.get("Content-Length", 0))
        self.bytes_sent = 0
        super().__init__(
            self._counted(range_generator(source, transfer_chunk_size)),
            status_code=status_code,
            headers=headers,
            media_type=media_type,
        )

    def _counted(self, chunks: Iterator[bytes]) -> Iterator[bytes]:
        for chunk in chunks:
            self.bytes_sent += len(chunk)
            yield chunk

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        reported = False
        try:
            await super().__call__(scope, receive, send)
        except StorageError as e:
            reported = True
            logger.error(f"Stream aborted for {self.label}: {e} {e.context}")
            raise
        except (ClientDisconnect, OSError) as e:
            reported = True
            logger.info(f"Client went away during {self.label}: {e}")
            raise
        finally:
            self.source.close()
            # Older ASGI servers signal a disconnect by cancelling the send
            if not reported and self.bytes_sent < self.expected_bytes:
                logger.info(
                    f"Stream for {self.label} ended early after "
                    f"{self.bytes_sent} of {self.expected_bytes} bytes"
                )


class RangeStreamer:
    """Serves byte windows of a stored file in answer to Range requests.

    Stateless apart from its limits, so one instance serves every request.
    """

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        transfer_chunk_size: int = TRANSFER_CHUNK_SIZE,
        missing_range_policy: MissingRangePolicy = MissingRangePolicy.REJECT,
        strict: bool = False,
    ) -> None:
        self.chunk_size = chunk_size
        self.transfer_chunk_size = transfer_chunk_size
        self.missing_range_policy = missing_range_policy
        self.strict = strict

    @classmethod
    def from_settings(cls, config) -> RangeStreamer:
        return cls(
            chunk_size=config.stream_window_bytes,
            transfer_chunk_size=config.transfer_chunk_bytes,
            missing_range_policy=config.missing_range_policy,
            strict=config.strict_range_parsing,
        )

    def window_for(self, range_header: str, file_size: int) -> ByteWindow:
        """Parse and fit a header value without touching storage."""
        try:
            spec = parse_range_header(range_header, strict=self.strict)
        except MalformedRangeError as e:
            e.file_size = file_size
            raise
        return resolve_window(spec, file_size, self.chunk_size)

    def serve(
        self,
        range_header: str | None,
        file_size: int,
        open_source: OpenSource,
        media_type: str = DEFAULT_MEDIA_TYPE,
    ) -> RangeResponse:
        """Build the response for one stream request.

        The byte source is only opened once the window is known to be valid.

        Args:
            range_header: Value of the ``Range`` header, if any.
            file_size: Live size of the stored file in bytes.
            open_source: Opens a byte source for an inclusive interval.
            media_type: Content type of the stored media.

        Returns:
            A 206 response, or a 200 full-content response when the header is
            absent and the policy allows it.

        Raises:
            RangeRequiredError: No header under the reject policy.
            MalformedRangeError: Unreadable header under strict parsing.
            UnsatisfiableRangeError: Window outside the file.
        """
        if not range_header:
            if self.missing_range_policy is not MissingRangePolicy.FULL:
                raise RangeRequiredError("Requires Range header")
            return self._serve_full(file_size, open_source, media_type)

        window = self.window_for(range_header, file_size)
        headers = {
            "Content-Range": window.content_range,
            "Accept-Ranges": "bytes",
            "Content-Length": str(window.length),
        }
        source = open_source(window.start, window.end)
        logger.debug(f"Serving {window.content_range}")
        return RangeResponse(
            source,
            status_code=206,
            headers=headers,
            media_type=media_type,
            transfer_chunk_size=self.transfer_chunk_size,
            label=window.content_range,
        )

    def _serve_full(
        self, file_size: int, open_source: OpenSource, media_type: str
    ) -> RangeResponse:
        source = open_source(0, file_size - 1)
        return RangeResponse(
            source,
            status_code=200,
            headers={
                "Accept-Ranges": "bytes",
                "Content-Length": str(file_size),
            },
            media_type=media_type,
            transfer_chunk_size=self.transfer_chunk_size,
            label=f"bytes 0-{file_size - 1}/{file_size}",
        )
