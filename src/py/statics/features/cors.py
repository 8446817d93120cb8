from ..http.model import HTTPRequest, HTTPResponse, THandler

# SEE: https://developer.mozilla.org/en-US/docs/Web/HTTP/CORS

CORS_METHODS: str = "GET, HEAD, OPTIONS"


def setCORSHeaders(
	response: HTTPResponse,
	*,
	origin: str = "*",
	headers: list[str] | None = None,
) -> HTTPResponse:
	"""Sets the CORS headers on the given response, so that a browser on any
	origin can read it, including when it is an error."""
	return response.setHeaders(
		{
			"Access-Control-Allow-Origin": origin,
			"Access-Control-Allow-Headers": ",".join(headers) if headers else "*",
			"Access-Control-Allow-Methods": CORS_METHODS,
		}
	)


def isPreflight(request: HTTPRequest) -> bool:
	return request.method == "OPTIONS" and bool(
		request.header("Access-Control-Request-Method")
	)


def withCORS(handler: THandler) -> THandler:
	"""Wraps the handler so that every response it returns carries the
	permissive CORS headers. Preflight requests are answered here, as
	browsers send them without the credentials the inner layers check."""

	def cors(request: HTTPRequest) -> HTTPResponse:
		if isPreflight(request):
			return setCORSHeaders(request.empty(headers={"Allow": CORS_METHODS}))
		return setCORSHeaders(handler(request))

	return cors


# EOF
