"""Form data parsing: URL-encoded and multipart, buffered or streamed.

Implements ``MultiValueMapping`` for consistent access across
``Headers``, ``QueryParams``, and ``FormData``.

URL-encoded forms use stdlib ``urllib.parse``. Multipart bodies go
through ``python-multipart``'s push parser, which accepts the body in
arbitrary chunks, so the same parser serves ``Request.form()`` (whole
body in memory first) and ``Request.stream_form()`` (chunks fed as they
arrive from the client).
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

from python_multipart.exceptions import FormParserError
from python_multipart.multipart import MultipartParser, parse_options_header

from wren.errors import BadRequest

URLENCODED = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"


def is_form_content_type(content_type: str | None) -> bool:
    """True for ``application/x-www-form-urlencoded`` and ``multipart/form-data``."""
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in (URLENCODED, MULTIPART)


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    ``name`` is the form field name, ``filename`` the client-side name.
    Content is held in memory.
    """

    name: str
    filename: str
    content_type: str
    size: int
    _content: bytes

    async def read(self) -> bytes:
        """Return the file content as bytes."""
        return self._content

    async def save(self, path: Path) -> None:
        """Write the file content to *path*. Parent directories must exist."""
        path.write_bytes(self._content)

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    String fields are reachable through the mapping interface; uploaded
    files are kept in submission order on ``files``.

    Usage::

        form = await request.form()
        title = form["title"]
        names = [f.filename for f in form.files]
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]] | None = None,
        files: tuple[UploadFile, ...] = (),
    ) -> None:
        object.__setattr__(self, "_data", data or {})
        object.__setattr__(self, "_files", files)

    @property
    def files(self) -> tuple[UploadFile, ...]:
        """All uploaded files, in the order they were submitted."""
        return self._files

    def file(self, name: str) -> UploadFile | None:
        """The first uploaded file for field *name*, or None."""
        for upload in self._files:
            if upload.name == name:
                return upload
        return None

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}}, files={len(self._files)})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))


class FormParser:
    """Incremental form parser.

    Feed body chunks with ``write()``, then call ``finish()`` once the
    body is exhausted::

        parser = FormParser(request.content_type)
        async for chunk in request.stream():
            parser.write(chunk)
        form = parser.finish()

    Raises ``BadRequest`` if the content type is not a form encoding,
    the multipart boundary is missing, or the body itself is malformed
    (broken multipart framing, non UTF-8 text).
    """

    __slots__ = ("_buffer", "_multipart")

    def __init__(self, content_type: str | None) -> None:
        if content_type is None or not is_form_content_type(content_type):
            msg = f"Unsupported form content type: {content_type!r}"
            raise BadRequest(msg)
        self._buffer = bytearray()
        self._multipart: _MultipartCollector | None = None
        if content_type.split(";", 1)[0].strip().lower() == MULTIPART:
            self._multipart = _MultipartCollector(content_type)

    def write(self, chunk: bytes) -> None:
        if self._multipart is None:
            self._buffer.extend(chunk)
            return
        try:
            self._multipart.write(chunk)
        except (FormParserError, UnicodeDecodeError) as exc:
            raise BadRequest(f"Malformed form body: {exc}") from exc

    def finish(self) -> FormData:
        try:
            if self._multipart is not None:
                return self._multipart.finish()
            parsed = parse_qs(self._buffer.decode("utf-8"), keep_blank_values=True)
        except (FormParserError, UnicodeDecodeError) as exc:
            raise BadRequest(f"Malformed form body: {exc}") from exc
        return FormData(parsed)


def parse_form_data(body: bytes, content_type: str | None) -> FormData:
    """Parse a complete form body into ``FormData``."""
    parser = FormParser(content_type)
    parser.write(body)
    return parser.finish()


class _MultipartCollector:
    """Collects python-multipart callbacks into fields and files.

    Header names and values may arrive split across several callbacks
    when the body is fed in chunks, so both are accumulated until
    ``on_header_end``.
    """

    def __init__(self, content_type: str) -> None:
        _, options = parse_options_header(content_type.encode("latin-1"))
        boundary = options.get(b"boundary")
        if not boundary:
            msg = "Multipart form data missing boundary parameter"
            raise BadRequest(msg)

        self._data: dict[str, list[str]] = {}
        self._files: list[UploadFile] = []
        self._headers: dict[str, str] = {}
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._content = bytearray()

        callbacks: dict[str, Any] = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
        }
        self._parser = MultipartParser(boundary, callbacks)

    def write(self, chunk: bytes) -> None:
        self._parser.write(chunk)

    def finish(self) -> FormData:
        self._parser.finalize()
        return FormData(self._data, tuple(self._files))

    # -- callbacks --

    def _on_part_begin(self) -> None:
        self._headers = {}
        self._content = bytearray()

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._content.extend(data[start:end])

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field.extend(data[start:end])

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value.extend(data[start:end])

    def _on_header_end(self) -> None:
        field = self._header_field.decode("latin-1").lower()
        self._headers[field] = self._header_value.decode("latin-1")
        self._header_field = bytearray()
        self._header_value = bytearray()

    def _on_part_end(self) -> None:
        disposition = self._headers.get("content-disposition")
        if disposition is None:
            return
        _, params = parse_options_header(disposition.encode("latin-1"))
        name = params.get(b"name")
        if name is None:
            return
        field_name = name.decode("utf-8")
        filename = params.get(b"filename")

        if filename is not None:
            content = bytes(self._content)
            self._files.append(
                UploadFile(
                    name=field_name,
                    filename=filename.decode("utf-8"),
                    content_type=self._headers.get("content-type", "application/octet-stream"),
                    size=len(content),
                    _content=content,
                )
            )
        else:
            value = self._content.decode("utf-8", errors="replace")
            self._data.setdefault(field_name, []).append(value)
