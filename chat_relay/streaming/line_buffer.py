"""Line assembly over arbitrarily chunked text streams.

Transport chunks rarely line up with record boundaries: one NDJSON object
may span two chunks, or one chunk may carry several objects plus the start
of the next. LineBuffer keeps the trailing partial line between feeds and
hands back only complete lines. Both the relay (backend NDJSON) and the
chat widget (relay SSE) run their own instance.
"""

import codecs
import logging

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINE_LENGTH = 1024 * 1024


class LineBuffer:
    """Accumulates chunks and yields complete newline-terminated lines.

    Accepts ``str`` or ``bytes``. Bytes go through an incremental UTF-8
    decoder so a multi-byte character split across chunks is rebuilt
    rather than mangled.

    The partial line held between feeds never exceeds ``max_line_length``
    characters. A line that grows past the limit is logged and dropped up to
    its terminating newline, and the stream carries on with the next line.
    """

    def __init__(self, max_line_length: int = DEFAULT_MAX_LINE_LENGTH) -> None:
        if max_line_length <= 0:
            raise ValueError(f"max_line_length must be positive, got {max_line_length}")
        self._max_line_length = max_line_length
        self._pending = ""
        self._discarding = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> str:
        """The incomplete trailing segment held for the next feed."""
        return self._pending

    def feed(self, chunk: str | bytes) -> list[str]:
        """Append a chunk and return every line it completed.

        Args:
            chunk: Next piece of the stream.

        Returns:
            Complete lines in stream order, without their newline. Lines
            longer than the limit are left out.
        """
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        if not chunk:
            return []

        *lines, self._pending = (self._pending + chunk).split("\n")

        if self._discarding:
            if not lines:
                self._pending = ""
                return []
            # Tail of the oversized line
            lines = lines[1:]
            self._discarding = False

        complete = []
        for line in lines:
            if len(line) > self._max_line_length:
                self._drop(len(line))
                continue
            complete.append(line.removesuffix("\r"))

        if len(self._pending) > self._max_line_length:
            self._drop(len(self._pending))
            self._pending = ""
            self._discarding = True

        return complete

    def flush(self) -> str:
        """Return the residual partial line at end of input and reset."""
        residual = self._pending + self._decoder.decode(b"", final=True)
        if self._discarding or len(residual) > self._max_line_length:
            residual = ""
        self._pending = ""
        self._discarding = False
        self._decoder.reset()
        return residual.removesuffix("\r")

    def _drop(self, length: int) -> None:
        logger.warning(
            f"Dropping line longer than {self._max_line_length} characters ({length} buffered)"
        )
