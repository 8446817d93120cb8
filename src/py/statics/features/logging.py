import time

from ..http.model import HTTPRequest, HTTPResponse, THandler
from ..utils.logging import event


def withLogging(handler: THandler) -> THandler:
	"""Logs a `Request` event for every request, once it has a response."""

	def logged(request: HTTPRequest) -> HTTPResponse:
		started = time.monotonic()
		response = handler(request)
		event(
			"Request",
			response.status,
			Method=request.method,
			Path=request.path,
			Status=response.status,
			Duration=round((time.monotonic() - started) * 1000, 3),
		)
		return response

	return logged


# EOF
