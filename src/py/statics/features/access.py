import hmac
from hashlib import md5

from ..http.model import HTTPRequest, HTTPResponse, THandler

# --
# Access restrictions. Both layers answer `403 Forbidden` before anything
# below them gets to run.

ACCESS_KEY_HEADER: str = "X-Access-Key"
ACCESS_KEY_PARAM: str = "key"
ACCESS_CODE_PARAM: str = "code"


def accessCode(path: str, key: str) -> str:
	"""The code that grants access to `path` without disclosing the key,
	as the upper-case hex MD5 of the path followed by the key."""
	# NOTE: This is a shareable token, not a password hash
	return md5(f"{path}{key}".encode("utf8"), usedforsecurity=False).hexdigest().upper()


def matches(value: str | None, expected: str) -> bool:
	return value is not None and hmac.compare_digest(
		value.encode("utf8"), expected.encode("utf8")
	)


def hasReferrer(request: HTTPRequest, referrers: tuple[str, ...] | list[str]) -> bool:
	"""Tells if the request `Referer` starts with one of the `referrers`,
	a missing or empty header never does."""
	referrer = request.header("Referer")
	return bool(referrer) and any(referrer.startswith(_) for _ in referrers if _)


def hasAccessKey(request: HTTPRequest, key: str) -> bool:
	"""Tells if the request presents the key, either as is in the `key`
	parameter or the `X-Access-Key` header, or as the `code` for its path."""
	return (
		matches(request.param(ACCESS_KEY_PARAM), key)
		or matches(request.header(ACCESS_KEY_HEADER), key)
		or matches(request.param(ACCESS_CODE_PARAM), accessCode(request.path, key))
	)


def withReferrers(
	handler: THandler, referrers: tuple[str, ...] | list[str]
) -> THandler:
	"""Only lets through requests coming from one of the `referrers`."""
	allowed = tuple(referrers)

	def referred(request: HTTPRequest) -> HTTPResponse:
		if hasReferrer(request, allowed):
			return handler(request)
		else:
			return request.forbidden()

	return referred


def withAccessKey(handler: THandler, key: str) -> THandler:
	"""Only lets through requests that present the access `key`."""

	def restricted(request: HTTPRequest) -> HTTPResponse:
		if hasAccessKey(request, key):
			return handler(request)
		else:
			return request.forbidden()

	return restricted


# EOF
