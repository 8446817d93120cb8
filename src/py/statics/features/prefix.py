from ..http.model import HTTPRequest, HTTPResponse, THandler


def stripPrefix(path: str, prefix: str) -> str | None:
	"""Returns the path with the prefix removed, or `None` when the path is
	not under the prefix. `/app` matches `/app/x` but not `/application`."""
	if not path.startswith(prefix):
		return None
	rest = path[len(prefix) :]
	if rest and not rest.startswith("/"):
		return None
	return rest


def withPrefix(handler: THandler, prefix: str) -> THandler:
	"""Mounts the handler under `prefix`: the prefix is removed from the
	request path, and requests outside of it are not found."""

	def prefixed(request: HTTPRequest) -> HTTPResponse:
		path = stripPrefix(request.path, prefix)
		if path is None:
			return request.notFound()
		elif not path:
			# The mount point itself, relative links need the trailing slash
			query = request.queryString
			return request.redirect(
				f"{prefix}/{f'?{query}' if query else ''}", permanent=True
			)
		else:
			return handler(request.withPath(path))

	return prefixed


# EOF
