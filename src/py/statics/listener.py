import asyncio
import ssl
from functools import partial
from typing import Callable, TypeAlias

from .config import Config, TLSTransport
from .http.model import THandler
from .server import AIOSocketServer, AIOStreamServer, ServerOptions
from .utils.limits import LimitType, unlimit
from .utils.logging import event

# A listener binds the address and serves the handler until the server
# stops. It blocks for the lifetime of the server, and its failures (bind
# errors, unusable certificates) are raised as is to the caller.
TListener: TypeAlias = Callable[[str, THandler], None]


def parseAddress(address: str) -> tuple[str, int]:
	"""Parses `host:port`, `[ipv6]:port` or `:port`, an empty host
	meaning all the interfaces."""
	host, sep, port = address.rpartition(":")
	if not sep:
		raise ValueError(f"Address is missing a port: {address!r}")
	if host.startswith("[") and host.endswith("]"):
		host = host[1:-1]
	return host or "0.0.0.0", int(port)  # nosec: B104


def sslContext(transport: TLSTransport) -> ssl.SSLContext:
	"""Creates the server-side SSL context, raising when the certificate
	or the key can't be loaded."""
	context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
	if transport.minVersion is not None:
		context.minimum_version = transport.minVersion
	context.load_cert_chain(transport.cert, transport.key)
	return context


def serverOptions(address: str, options: ServerOptions | None = None) -> ServerOptions:
	host, port = parseAddress(address)
	return (options or ServerOptions())._replace(host=host, port=port)


def listenPlain(
	address: str, handler: THandler, options: ServerOptions | None = None
) -> None:
	"""Serves the handler over plain HTTP on the given address."""
	unlimit(LimitType.Files)
	try:
		asyncio.run(AIOSocketServer.Serve(handler, serverOptions(address, options)))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


def listenTLS(
	address: str,
	handler: THandler,
	transport: TLSTransport,
	options: ServerOptions | None = None,
) -> None:
	"""Serves the handler over HTTPS on the given address."""
	context = sslContext(transport)
	unlimit(LimitType.Files)
	try:
		asyncio.run(
			AIOStreamServer.Serve(handler, serverOptions(address, options), context)
		)
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


def selectListener(
	config: Config,
	*,
	plain: TListener = listenPlain,
	secure: Callable[[str, THandler, TLSTransport], None] = listenTLS,
) -> TListener:
	"""Picks the listener for the configuration: TLS when both the
	certificate and the key are set, plain HTTP otherwise. This never
	fails, nor touches the filesystem."""
	match config.transport:
		case TLSTransport() as transport:
			return partial(secure, transport=transport)
		case _:
			return plain


# EOF
