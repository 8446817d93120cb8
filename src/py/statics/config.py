import os
import ssl
from typing import Mapping, NamedTuple, TypeAlias

from .utils.logging import warning

# --
# Configuration is read once from the environment (and overridden by command
# line flags), validated, and then passed around as an immutable value.

DEFAULT_FOLDER: str = "/web"
DEFAULT_PORT: int = 8080

TLS_VERSIONS: dict[str, ssl.TLSVersion] = {
	"TLS10": ssl.TLSVersion.TLSv1,
	"TLS11": ssl.TLSVersion.TLSv1_1,
	"TLS12": ssl.TLSVersion.TLSv1_2,
	"TLS13": ssl.TLSVersion.TLSv1_3,
}

BOOLEANS: dict[str, bool] = {
	"1": True,
	"true": True,
	"yes": True,
	"on": True,
	"0": False,
	"false": False,
	"no": False,
	"off": False,
}


class ConfigError(ValueError):
	"""Raised when the configuration can't be used to start the server."""


class PlainTransport(NamedTuple):
	"""Serves plain-text HTTP."""

	pass


class TLSTransport(NamedTuple):
	"""Serves HTTPS with the given certificate and key files."""

	cert: str
	key: str
	minVersion: ssl.TLSVersion | None = None


TTransport: TypeAlias = PlainTransport | TLSTransport


def asBool(value: str | None, name: str, default: bool = False) -> bool:
	if value is None or not value.strip():
		return default
	key = value.strip().lower()
	if key not in BOOLEANS:
		raise ConfigError(
			f"Value for '{name}' must be a boolean like 'true' or 'false', got: {value!r}"
		)
	return BOOLEANS[key]


def asPort(value: str | None, name: str = "PORT") -> int:
	if value is None or not value.strip():
		return DEFAULT_PORT
	try:
		port = int(value)
	except ValueError:
		raise ConfigError(f"Value for '{name}' must be a number, got: {value!r}")
	if not 0 <= port <= 65535:
		raise ConfigError(f"Value for '{name}' must be within 0-65535, got: {port}")
	return port


def asList(value: str | None) -> tuple[str, ...]:
	"""Parses a comma separated list, empty items being dropped."""
	return tuple(_.strip() for _ in (value or "").split(",") if _.strip())


class Config(NamedTuple):
	folder: str = DEFAULT_FOLDER
	host: str = ""
	port: int = DEFAULT_PORT
	urlPrefix: str = ""
	showListing: bool = True
	allowIndex: bool = True
	referrers: tuple[str, ...] = ()
	cors: bool = False
	accessKey: str = ""
	tlsCert: str = ""
	tlsKey: str = ""
	tlsMinVersion: str = ""
	debug: bool = False
	# Set by `validate`, so that the transport is decided once
	selectedTransport: TTransport | None = None

	@staticmethod
	def FromEnv(environ: Mapping[str, str] | None = None) -> "Config":
		"""Reads the configuration from environment variables, raising
		a `ConfigError` for values that can't be parsed."""
		env: Mapping[str, str] = os.environ if environ is None else environ
		return Config(
			folder=env.get("FOLDER") or DEFAULT_FOLDER,
			host=env.get("HOST", ""),
			port=asPort(env.get("PORT")),
			urlPrefix=env.get("URL_PREFIX", ""),
			showListing=asBool(env.get("SHOW_LISTING"), "SHOW_LISTING", True),
			allowIndex=asBool(env.get("ALLOW_INDEX"), "ALLOW_INDEX", True),
			referrers=asList(env.get("REFERRERS")),
			cors=asBool(env.get("CORS"), "CORS"),
			accessKey=env.get("ACCESS_KEY", ""),
			tlsCert=env.get("TLS_CERT", ""),
			tlsKey=env.get("TLS_KEY", ""),
			tlsMinVersion=env.get("TLS_MIN_VERS", "").strip().upper(),
			debug=asBool(env.get("DEBUG"), "DEBUG"),
		)

	@property
	def address(self) -> str:
		host = f"[{self.host}]" if ":" in self.host else self.host
		return f"{host}:{self.port}"

	@property
	def transport(self) -> TTransport:
		"""TLS when both the certificate and the key are given, plain
		otherwise. Nothing is checked on the filesystem."""
		if self.selectedTransport is not None:
			return self.selectedTransport
		elif self.tlsCert and self.tlsKey:
			return TLSTransport(
				self.tlsCert, self.tlsKey, TLS_VERSIONS.get(self.tlsMinVersion)
			)
		else:
			return PlainTransport()

	def validate(self) -> "Config":
		"""Checks that the configuration is usable, returning it with
		the folder made absolute and the transport decided."""
		transport = self.transport
		folder = os.path.abspath(self.folder)
		if not os.path.isdir(folder):
			raise ConfigError(
				f"Value for 'FOLDER' must be an existing directory, got: {self.folder!r}"
			)
		if not 0 <= self.port <= 65535:
			raise ConfigError(f"Value for 'PORT' must be within 0-65535, got: {self.port}")
		if not os.access(folder, os.R_OK | os.X_OK):
			raise ConfigError(f"Folder is not readable: {folder!r}")
		if self.tlsCert or self.tlsKey:
			if not (self.tlsCert and self.tlsKey):
				raise ConfigError(
					"If value for either 'TLS_CERT' or 'TLS_KEY' is set then the "
					"value for the other must also be set (values are currently "
					f"{self.tlsCert!r} and {self.tlsKey!r}, respectively)"
				)
			for name, path in (("TLS_CERT", self.tlsCert), ("TLS_KEY", self.tlsKey)):
				if not os.path.isfile(path):
					raise ConfigError(f"Value for '{name}' is not a file: {path!r}")
		if self.tlsMinVersion:
			if self.tlsMinVersion not in TLS_VERSIONS:
				raise ConfigError(
					f"Value for 'TLS_MIN_VERS' must be one of {', '.join(TLS_VERSIONS)}, got: {self.tlsMinVersion!r}"
				)
			if isinstance(transport, PlainTransport):
				warning(
					"Value for 'TLS_MIN_VERS' is set but 'TLS_CERT' and 'TLS_KEY' are not",
					Value=self.tlsMinVersion,
				)
		if self.urlPrefix and (
			not self.urlPrefix.startswith("/") or self.urlPrefix.endswith("/")
		):
			raise ConfigError(
				"If value for 'URL_PREFIX' is set then the value must start with "
				f"'/' and not end with '/', got: {self.urlPrefix!r} (valid example: '/my/prefix')"
			)
		return self._replace(folder=folder, selectedTransport=transport)

	def describe(self) -> dict[str, str | int | bool]:
		"""A loggable version of the configuration, without secrets."""
		return {
			"Folder": self.folder,
			"Address": self.address,
			"Prefix": self.urlPrefix,
			"Listing": self.showListing,
			"Index": self.allowIndex,
			"Referrers": ",".join(self.referrers),
			"CORS": self.cors,
			"AccessKey": bool(self.accessKey),
			"TLS": isinstance(self.transport, TLSTransport),
			"TLSMinVersion": self.tlsMinVersion,
		}


# EOF
