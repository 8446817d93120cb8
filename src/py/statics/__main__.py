import argparse
import sys
from typing import Sequence

from . import VERSION
from .config import Config, ConfigError, TLS_VERSIONS
from .handler import compose
from .listener import TListener, selectListener
from .utils.logging import LogLevel, error, exception, info, setLevel

USAGE: str = """\
statics [help|version] [flags]

Serves the files of a folder over HTTP(S). Flags override the environment:

  FOLDER        folder to serve (default: /web)
  HOST          host to bind (default: all interfaces)
  PORT          port to bind (default: 8080)
  URL_PREFIX    path prefix the files are served under, like '/my/prefix'
  SHOW_LISTING  lists directories without an index (default: true)
  ALLOW_INDEX   serves index.html for directories (default: true)
  REFERRERS     comma separated allowed referrer prefixes
  CORS          adds cross-origin headers (default: false)
  ACCESS_KEY    key required as the 'key' parameter or 'X-Access-Key' header
  TLS_CERT      certificate file, TLS is enabled when both files are set
  TLS_KEY       private key file
  TLS_MIN_VERS  minimum TLS version, one of TLS10, TLS11, TLS12, TLS13
  DEBUG         logs the configuration and requests (default: false)
"""


def parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(
		prog="statics",
		usage=USAGE,
		description="Static files HTTP(S) server",
		add_help=False,
	)
	p.add_argument("command", nargs="?", choices=("help", "version"))
	p.add_argument("-h", "--help", dest="help", action="store_true")
	p.add_argument("--folder")
	p.add_argument("--host")
	p.add_argument("--port", type=int)
	p.add_argument("--prefix", dest="urlPrefix")
	p.add_argument(
		"--no-listing", dest="showListing", action="store_false", default=None
	)
	p.add_argument("--no-index", dest="allowIndex", action="store_false", default=None)
	p.add_argument("--referrer", dest="referrers", action="append")
	p.add_argument("--cors", action="store_true", default=None)
	p.add_argument("--access-key", dest="accessKey")
	p.add_argument("--tls-cert", dest="tlsCert")
	p.add_argument("--tls-key", dest="tlsKey")
	p.add_argument(
		"--tls-min-version",
		dest="tlsMinVersion",
		type=str.upper,
		choices=tuple(TLS_VERSIONS),
	)
	p.add_argument("--debug", action="store_true", default=None)
	return p


def configure(args: argparse.Namespace, config: Config) -> Config:
	"""Returns the configuration with the given command line flags
	overriding its values."""
	overrides = {
		k: tuple(v) if k == "referrers" else v
		for k, v in vars(args).items()
		if k in Config._fields and v is not None
	}
	return config._replace(**overrides)


def run(config: Config, listener: TListener | None = None) -> None:
	"""Validates the configuration, composes the handler and serves it
	with the listener, which is selected from the configuration unless
	given. Failures are raised unchanged."""
	config = config.validate()
	if config.debug:
		setLevel(LogLevel.Debug)
		info("Configuration", **config.describe())
	handler = compose(config)
	serve = selectListener(config) if listener is None else listener
	serve(config.address, handler)


def main(args: Sequence[str] | None = None) -> int:
	options = parser().parse_args(args)
	if options.help or options.command == "help":
		sys.stdout.write(USAGE)
		return 0
	elif options.command == "version":
		sys.stdout.write(f"statics {VERSION}\n")
		return 0
	try:
		run(configure(options, Config.FromEnv()))
	except ConfigError as e:
		error(str(e), "ConfigError")
		return 1
	except OSError as e:
		exception(e, "Server failed")
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
