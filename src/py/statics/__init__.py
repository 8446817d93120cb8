from .config import Config, ConfigError, PlainTransport, TLSTransport  # NOQA: F401
from .files import FileHandler  # NOQA: F401
from .handler import compose  # NOQA: F401
from .http.model import HTTPRequest, HTTPResponse, HTTPRequestError  # NOQA: F401
from .listener import listenPlain, listenTLS, selectListener  # NOQA: F401

VERSION: str = "1.0.0"

# EOF
