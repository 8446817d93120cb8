import asyncio
import socket
import ssl
import threading
from dataclasses import dataclass
from pathlib import Path
from signal import SIGINT, SIGTERM
from typing import Any, Awaitable, Callable, NamedTuple

from .http.model import (
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestError,
	HTTPResponse,
	THandler,
)
from .http.parser import HTTPParser
from .utils.logging import LogLevel, debug, exception, info, logged, warning


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)
		else:
			warning("Event loop error", Message=context.get("message"))


class ServerOptions(NamedTuple):
	host: str = "0.0.0.0"  # nosec: B104
	port: int = 8080
	backlog: int = 10_000
	# Time given to a fresh connection to send its first request
	timeout: float = 10.0
	# How long an idle keep-alive connection is kept open
	keepalive: float = 75.0
	# This is the polling timeout for accepting new requests and checking
	# the server state.
	polling: float = 1.0
	readsize: int = 64_000
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 11\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Bad Request"
)

SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 21\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal Server Error"
)


# -----------------------------------------------------------------------------
#
# WRITERS
#
# -----------------------------------------------------------------------------


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO sockets."""

	def __init__(self, client: socket.socket, loop: asyncio.AbstractEventLoop) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(self, chunk: bytes) -> bool:
		if chunk:
			await self.loop.sock_sendall(self.client, chunk)
		return True

	async def _writeFile(self, path: Path, size: int = 64_000) -> bool:
		with open(path, "rb") as f:
			await self.loop.sock_sendfile(self.client, f)
		return True


class AIOStreamBodyWriter(HTTPBodyWriter):
	"""Body writer for asyncio streams, which is what TLS connections use."""

	def __init__(self, writer: asyncio.StreamWriter) -> None:
		super().__init__()
		self.writer: asyncio.StreamWriter = writer

	async def _writeBytes(self, chunk: bytes) -> bool:
		if chunk:
			self.writer.write(chunk)
			await self.writer.drain()
		return True


# -----------------------------------------------------------------------------
#
# SERVERS
#
# -----------------------------------------------------------------------------


class AIOServer:
	"""Connection processing shared by the socket and stream servers."""

	@classmethod
	async def OnConnection(
		cls,
		handler: THandler,
		receive: Callable[[], Awaitable[bytes]],
		writer: HTTPBodyWriter,
		*,
		options: ServerOptions,
		client: str = "",
	) -> HTTPProcessingStatus:
		"""Reads requests from `receive` and writes the responses until the
		client closes, times out or asks to close the connection."""
		parser: HTTPParser = HTTPParser()
		keep_alive: bool = True
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		req_count: int = 0
		res_count: int = 0
		# NOTE: With HTTP pipelining, one chunk may hold more than one
		# request, so we answer as many as the parser yields.
		while keep_alive and not writer.shouldClose:
			try:
				chunk = await asyncio.wait_for(
					receive(),
					timeout=options.keepalive if req_count else options.timeout,
				)
			except TimeoutError:
				status = HTTPProcessingStatus.Timeout
				break
			if not chunk:
				status = HTTPProcessingStatus.NoData
				break
			for atom in parser.feed(chunk):
				if atom is HTTPProcessingStatus.BadFormat:
					warning("Malformed request", Client=client, Requests=req_count)
					await writer.write(BAD_REQUEST)
					status = atom
					keep_alive = False
					break
				elif isinstance(atom, HTTPRequest):
					req_count += 1
					if (
						atom.protocol == "HTTP/1.0"
						or (atom.header("Connection") or "").lower() == "close"
					):
						keep_alive = False
					res = await cls.SendResponse(atom, handler, writer, close=not keep_alive)
					if res is None:
						keep_alive = False
						break
					res_count += 1
					if res.shouldClose:
						keep_alive = False
					if not keep_alive:
						break
		if status is HTTPProcessingStatus.Timeout and req_count == 0:
			warning("Client timed out before sending a request", Client=client)
		elif res_count != req_count:
			warning(
				"Incomplete responses",
				Client=client,
				Requests=req_count,
				Responses=res_count,
			)
		return status

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		handler: THandler,
		writer: HTTPBodyWriter,
		*,
		close: bool = False,
	) -> HTTPResponse | None:
		"""Processes the request with the handler and sends the response
		using the given writer, returning `None` when no response could be
		produced."""
		res: HTTPResponse | None = None
		try:
			res = handler(request)
		except HTTPRequestError as e:
			res = request.error(e.status or 500, e.message, e.contentType or "text/plain")
		except Exception as e:
			exception(e, f"Handler failed on {request.method} {request.path}")
		if res is None:
			await writer.write(SERVER_ERROR)
			return None
		if close:
			res.setHeader("Connection", "close")
		await writer.write(res.head())
		if request.method != "HEAD":
			await writer.write(res.body)
		return res


class AIOSocketServer(AIOServer):
	"""Plain HTTP backend using non-blocking sockets directly."""

	@classmethod
	async def OnSocket(
		cls,
		handler: THandler,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		size: int = options.readsize
		try:
			await cls.OnConnection(
				handler,
				lambda: loop.sock_recv(client, size),
				AIOSocketBodyWriter(client, loop),
				options=options,
				client=f"{id(client):x}",
			)
		except (ConnectionError, BrokenPipeError) as e:
			logged(LogLevel.Debug) and debug("Connection lost", Error=str(e))
		except Exception as e:
			exception(e)
		finally:
			client.close()

	@classmethod
	async def Serve(
		cls,
		handler: THandler,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine, returns when the server is stopped. Binding
		errors are raised as is."""
		family = socket.AF_INET6 if ":" in options.host else socket.AF_INET
		server = socket.socket(family, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			server.bind((options.host, options.port))
			# The argument is the backlog of connections that will be accepted
			# before they are refused.
			server.listen(options.backlog)
		except OSError:
			server.close()
			raise
		server.setblocking(False)

		loop = asyncio.get_running_loop()
		state = ServerState()
		register(state, loop, options)
		info(
			"Statics listening",
			icon="🚀",
			Host=options.host,
			Port=server.getsockname()[1],
			TLS=False,
		)

		tasks: set[asyncio.Task[None]] = set()
		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling
					)
				except TimeoutError:
					continue
				except OSError as e:
					# [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnSocket(handler, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)


class AIOStreamServer(AIOServer):
	"""HTTPS backend, TLS being managed by asyncio streams."""

	@classmethod
	async def Serve(
		cls,
		handler: THandler,
		options: ServerOptions,
		context: ssl.SSLContext,
	) -> None:
		writers: set[asyncio.StreamWriter] = set()

		async def onClient(
			reader: asyncio.StreamReader, writer: asyncio.StreamWriter
		) -> None:
			writers.add(writer)
			peer = writer.get_extra_info("peername")
			try:
				await cls.OnConnection(
					handler,
					lambda: reader.read(options.readsize),
					AIOStreamBodyWriter(writer),
					options=options,
					client=str(peer[0]) if peer else "",
				)
			except (ConnectionError, ssl.SSLError) as e:
				logged(LogLevel.Debug) and debug("Connection lost", Error=str(e))
			except Exception as e:
				exception(e)
			finally:
				writers.discard(writer)
				writer.close()

		server = await asyncio.start_server(
			onClient,
			options.host,
			options.port,
			ssl=context,
			backlog=options.backlog,
			limit=options.readsize,
		)
		loop = asyncio.get_running_loop()
		state = ServerState()
		register(state, loop, options)
		info(
			"Statics listening",
			icon="🔒",
			Host=options.host,
			Port=server.sockets[0].getsockname()[1] if server.sockets else options.port,
			TLS=True,
		)
		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				await asyncio.sleep(options.polling)
		finally:
			server.close()
			for writer in list(writers):
				writer.close()
			await server.wait_closed()


def register(
	state: ServerState, loop: asyncio.AbstractEventLoop, options: ServerOptions
) -> None:
	"""Registers the signal handlers (main thread only) and the loop
	exception handler."""
	if options.stopSignals and threading.current_thread() is threading.main_thread():
		loop.add_signal_handler(SIGINT, state.stop)
		loop.add_signal_handler(SIGTERM, state.stop)
	loop.set_exception_handler(state.onException)


# EOF
