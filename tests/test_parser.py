from statics.http.model import (
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)
from statics.http.parser import MAX_BODY, HTTPParser, parseQuery
from statics.utils.io import LineParser

from harness import runTests


def requests(parser: HTTPParser, *chunks: bytes) -> list[HTTPRequest]:
	return [
		atom
		for chunk in chunks
		for atom in parser.feed(chunk)
		if isinstance(atom, HTTPRequest)
	]


def test_line_parser():
	parser = LineParser()
	lines: list[bytes] = []
	for chunk in [
		b"GET /time/5 HTTP/1.1\r\nHost: 127.0.0.1\r\nConnection: close",
		b"\r\n\r",
		b"\n",
	]:
		offset: int = 0
		while offset < len(chunk):
			line, read = parser.feed(chunk, offset)
			offset += read
			if line is not None:
				lines.append(line)
	assert lines == [b"GET /time/5 HTTP/1.1", b"Host: 127.0.0.1", b"Connection: close", b""]


def test_parser_chunks():
	parser = HTTPParser()
	atoms = [
		atom
		for chunk in [
			b"GET /time/5 ",
			b"HTTP/1.1\r\nHost: ",
			b"127.0.0.1\r",
			b"\nConn",
			b"ection: close\r\n",
			b"\r",
			b"\n",
		]
		for atom in parser.feed(chunk)
	]
	assert len(atoms) == 3
	assert atoms[0] == HTTPRequestLine("GET", "/time/5", "", "HTTP/1.1")
	assert isinstance(atoms[1], HTTPHeaders)
	req = atoms[2]
	assert isinstance(req, HTTPRequest)
	assert req.method == "GET"
	assert req.path == "/time/5"
	assert req.header("host") == "127.0.0.1"
	assert req.header("Connection") == "close"


def test_parser_query():
	(req,) = requests(
		HTTPParser(), b"get /a%20b?x=1&y=hello+world&x=2&z HTTP/1.0\r\n\r\n"
	)
	assert req.method == "GET"
	assert req.protocol == "HTTP/1.0"
	assert req.path == "/a b"
	assert req.query == {"x": "1", "y": "hello world", "z": ""}
	assert req.param("y") == "hello world"
	assert req.param("missing", "default") == "default"
	assert parseQuery("") == {}
	assert parseQuery("&&a=%2F&") == {"a": "/"}


def test_parser_body():
	parser = HTTPParser()
	atoms = list(parser.feed(b"POST /upload HTTP/1.1\r\nContent-Length: 11\r\n\r\nHello"))
	assert HTTPProcessingStatus.Body in atoms
	assert not [_ for _ in atoms if isinstance(_, HTTPRequest)]
	(req,) = requests(parser, b", World")
	assert req.body is not None
	assert req.body.raw == b"Hello, World"[:11]
	assert req.body.length == 11


def test_parser_pipelined():
	parser = HTTPParser()
	reqs = requests(
		parser,
		b"GET /a HTTP/1.1\r\nHost: x\r\n\r\nGET /b HTTP/1.1\r\nHost: x\r\n\r\nGET /c",
		b" HTTP/1.1\r\n\r\n",
	)
	assert [_.path for _ in reqs] == ["/a", "/b", "/c"]


def test_parser_bad_format():
	for raw in (
		b"NOT A REQUEST\r\n\r\n",
		b"GET\r\n\r\n",
		b"GET / HTTP/1.1\r\nContent-Length: many\r\n\r\n",
		b"POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n",
		b"GET / HTTP/1.1\r\nContent-Length: -20\r\n\r\n",
		b"POST / HTTP/1.1\r\nContent-Length: %d\r\n\r\n" % (MAX_BODY + 1),
	):
		atoms = list(HTTPParser().feed(raw))
		assert atoms[-1] is HTTPProcessingStatus.BadFormat, raw


def test_parser_negative_length():
	# The stream is rejected before anything that follows gets parsed
	parser = HTTPParser()
	atoms = list(parser.feed(b"GET /x HTTP/1.1\r\nContent-Length: -20\r\n\r\n"))
	assert atoms[-1] is HTTPProcessingStatus.BadFormat
	assert not [_ for _ in atoms if isinstance(_, HTTPRequest)]
	(req,) = requests(parser, b"GET /y HTTP/1.1\r\nHost: a\r\n\r\n")
	assert req.path == "/y"


def test_header_names():
	assert headername("content-type") == "Content-Type"
	assert headername("X-ACCESS-KEY") == "X-Access-Key"
	parser = HTTPParser()
	for i in range(1000):
		requests(parser, f"GET / HTTP/1.1\r\nX-Unique-{i}: {i}\r\n\r\n".encode())
	# Client provided names don't grow the memo without bounds
	info = headername.cache_info()
	assert info.maxsize is not None
	assert info.currsize <= info.maxsize


def test_parser_tls_handshake():
	# A TLS client hello sent to a plain listener is skipped
	record = bytes([0x16, 0x03, 0x01, 0x00, 0x04]) + b"\x01\x00\x00\x00"
	(req,) = requests(HTTPParser(), record + b"GET / HTTP/1.1\r\n\r\n")
	assert req.path == "/"


if __name__ == "__main__":
	runTests(globals())

# EOF
