from typing import Iterator, Literal
from urllib.parse import unquote, unquote_plus

from ..utils.io import LineParser
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPBodyBlob,
	HTTPAtom,
	HTTPProcessingStatus,
	headername,
)

# Request lines and header lines longer than this are rejected
MAX_LINE: int = 16_384
# Requests only ever need small bodies, larger ones are rejected
MAX_BODY: int = 65_536

BAD_FORMAT = HTTPProcessingStatus.BadFormat


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value", "skipping"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None
		self.skipping: int = 0

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "MessageParser":
		self.line.reset()
		self.value = None
		self.skipping = 0
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[bool | HTTPProcessingStatus | None, int]:
		n = len(chunk)
		available = n - start
		if self.skipping:
			read = min(available, self.skipping)
			self.skipping -= read
			return None, read
		elif available >= 5 and chunk[start] == 0x16 and not self.line.buffer:
			# A TLS handshake sent to a plain listener, we skip the record
			size = 5 + (chunk[start + 3] << 8) + chunk[start + 4]
			if available >= size:
				return None, size
			else:
				self.skipping = size - available
				return None, available
		else:
			line, read = self.line.feed(chunk, start)
			if line is None:
				return (BAD_FORMAT if len(self.line.buffer) > MAX_LINE else None), read
			elif not line:
				# Stray empty lines before a request are tolerated
				return None, read
			ln = line.decode("latin-1")
			i = ln.find(" ")
			j = ln.rfind(" ")
			if i <= 0 or i == j or not ln[j + 1 :].startswith("HTTP/"):
				return BAD_FORMAT, read
			p: list[str] = ln[i + 1 : j].split("?", 1)
			self.value = HTTPRequestLine(
				ln[0:i].upper(), unquote(p[0]), p[1] if len(p) > 1 else "", ln[j + 1 :]
			)
			return True, read

	def __str__(self) -> str:
		return f"MessageParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | HTTPProcessingStatus | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns a value
		and the number of bytes read. The value is `None` when no header has
		been extracted, `False` on the empty line that ends the headers, and
		the header name when a header was added."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return (BAD_FORMAT if len(self.line.buffer) > MAX_LINE else None), read
		elif not line:
			return False, read
		ln: str = line.decode("latin-1")
		i = ln.find(":")
		if i == -1:
			return None, read
		h = ln[:i].strip().lower()
		v = ln[i + 1 :].strip()
		if h == "content-length":
			try:
				self.contentLength = int(v)
			except ValueError:
				return BAD_FORMAT, read
			if not 0 <= self.contentLength <= MAX_BODY:
				return BAD_FORMAT, read
		elif h == "content-type":
			self.contentType = v
		n: str = headername(h)
		self.headers[n] = v
		return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with Content-Length set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(b"".join(self.data), self.read, self.expected - self.read)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data = []
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool, int]:
		to_read: int = min(len(chunk) - start, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return self.read >= self.expected, to_read


class HTTPParser:
	"""A stateful, incremental HTTP request parser. Chunks are fed as they
	come from the transport, and atoms are yielded as soon as they are
	complete, in particular `HTTPRequest` instances."""

	def __init__(self) -> None:
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.bodyLength: BodyLengthParser = BodyLengthParser()
		self.parser: MessageParser | HeadersParser | BodyLengthParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def reset(self) -> "HTTPParser":
		self.message.reset()
		self.headers.reset()
		self.bodyLength.reset()
		self.parser = self.message
		self.requestLine = None
		self.requestHeaders = None
		return self

	def request(self, body: HTTPBodyBlob) -> HTTPRequest:
		line = self.requestLine
		headers = self.requestHeaders
		if line is None or headers is None:
			raise RuntimeError("Parser has no request line or headers")
		self.parser = self.message.reset()
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=headers,
			body=body,
			protocol=line.protocol,
		)

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		"""Feeds the chunk, yielding atoms. A `BadFormat` status means the
		stream can't be parsed any further and the parser is reset."""
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			if self.parser is self.message:
				ok, read = self.message.feed(chunk, offset)
				offset += read
				if ok is BAD_FORMAT:
					self.reset()
					yield BAD_FORMAT
					return
				elif ok:
					line = self.message.flush()
					self.requestLine = line
					self.requestHeaders = None
					if line is not None:
						yield line
					self.parser = self.headers
			elif self.parser is self.headers:
				name, read = self.headers.feed(chunk, offset)
				offset += read
				if name is BAD_FORMAT:
					self.reset()
					yield BAD_FORMAT
					return
				elif name is False:
					headers = self.headers.flush()
					self.requestHeaders = headers
					yield headers
					if "chunked" in headers.headers.get("Transfer-Encoding", "").lower():
						# Chunked request bodies are not supported
						self.reset()
						yield BAD_FORMAT
						return
					elif not headers.contentLength:
						yield self.request(HTTPBodyBlob())
					else:
						self.parser = self.bodyLength.reset(headers.contentLength)
						yield HTTPProcessingStatus.Body
			else:
				done, read = self.bodyLength.feed(chunk, offset)
				offset += read
				if done:
					yield self.request(self.bodyLength.flush())


def parseQuery(text: str) -> dict[str, str]:
	"""Parses a query string, the first occurrence of a key wins."""
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		k = unquote_plus(kv[0])
		if k not in res:
			res[k] = unquote_plus(kv[1]) if len(kv) > 1 else ""
	return res


# EOF
