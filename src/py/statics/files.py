import os
from pathlib import Path
from urllib.parse import quote

from .http.model import HTTPRequest, HTTPResponse
from .utils.files import FileEntry
from .utils.htmpl import H, Node, html

# --
# The base handler, which maps request paths onto a folder. Everything that
# decides whether a request is allowed to get there is layered on top, see
# `statics.handler`.

INDEX: str = "index.html"
ALLOWED: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")

FILE_CSS: str = """
:root {
    font-family: sans-serif;
    font-size: 14px;
    line-height: 1.35em;
    padding: 20px;
    background: #F0F0F0;
}
h1 {
    margin: 1.25em 0em;
}
ul {
    padding: 0px 20px;
}
li {
    padding: 0px 10px;
    margin: 0.35em 0em;
}
"""


class FileHandler:
	"""Serves the files under `root`, listing directories when `showListing`
	is set and serving their `index.html` when `allowIndex` is set."""

	def __init__(
		self,
		root: str | Path,
		*,
		showListing: bool = True,
		allowIndex: bool = True,
	):
		self.root: Path = (root if isinstance(root, Path) else Path(root)).absolute()
		self.showListing: bool = showListing
		self.allowIndex: bool = allowIndex

	def __call__(self, request: HTTPRequest) -> HTTPResponse:
		if request.method == "OPTIONS":
			return request.empty(headers={"Allow": ", ".join(ALLOWED)})
		elif request.method not in ("GET", "HEAD"):
			return request.notAllowed(ALLOWED)
		localPath = self.resolvePath(request.path)
		if localPath is None or not localPath.exists():
			return request.notFound()
		elif localPath.is_dir():
			return self.renderDirectory(request, localPath)
		elif request.path.endswith("/"):
			# A file requested as a directory
			return self.redirect(
				request, "../" + os.path.basename(request.path.rstrip("/"))
			)
		elif not os.access(localPath, os.R_OK):
			return request.forbidden()
		else:
			return request.respondFile(localPath)

	def resolvePath(self, path: str) -> Path | None:
		"""Returns the local path for the given request path, or `None` when
		it would end up outside of the root."""
		normalized = os.path.normpath("/" + path.lstrip("/"))
		local = self.root.joinpath(normalized.lstrip("/")).absolute()
		if local.parts[: len(parts := self.root.parts)] != parts:
			return None
		return local

	def redirect(self, request: HTTPRequest, location: str) -> HTTPResponse:
		query = request.queryString
		return request.redirect(
			quote(location) + (f"?{query}" if query else ""), permanent=True
		)

	def renderDirectory(self, request: HTTPRequest, localPath: Path) -> HTTPResponse:
		if not request.path.endswith("/"):
			return self.redirect(request, os.path.basename(request.path) + "/")
		index = localPath / INDEX
		if self.allowIndex and index.is_file():
			return request.respondFile(index)
		elif not self.showListing:
			return request.notFound()
		match request.param("format"):
			# The JSON format lists the contents of a directory
			case "json":
				return request.returns(
					[FileEntry.FromPath(_) for _ in sorted(localPath.iterdir())]
				)
			case _:
				return request.respondHTML(
					"".join(self.renderListing(request.path, localPath))
				)

	def renderListing(self, path: str, localPath: Path) -> list[str]:
		dirs: list[Node] = []
		files: list[Node] = []
		if path != "/":
			dirs.append(H.li(H.a("..", href="../")))
		for p in sorted(localPath.iterdir()):
			# Links are relative so that listings work behind a prefix
			if p.is_dir():
				dirs.append(H.li(H.a(f"{p.name}/", href=quote(p.name) + "/")))
			else:
				files.append(H.li(H.a(p.name, href=quote(p.name))))
		nodes: list[Node] = []
		if dirs:
			nodes.append(
				H.section(
					H.h2("Directories"),
					H.ul(*dirs, style='list-style-type: "\\1F4C1";'),
				)
			)
		if files:
			nodes.append(
				H.section(H.h2("Files"), H.ul(*files, style='list-style-type: "\\1F4C4";'))
			)
		return list(
			html(
				H.html(
					H.head(
						H.meta(charset="utf-8"),
						H.meta(
							name="viewport",
							content="width=device-width, initial-scale=1.0",
						),
						H.title(path),
						H.style(FILE_CSS),
					),
					H.body(H.h1("Listing for ", H.code(path)), *nodes),
				),
				doctype="html",
			)
		)


# EOF
