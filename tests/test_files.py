from statics.files import FileHandler
from statics.utils.json import unjson

from harness import content, folder, request, runTests

# --
# The base handler on its own, without any of the layers.


def test_files_serve():
	with folder() as root:
		files = FileHandler(root)
		res = files(request("/file.txt"))
		assert res.status == 200
		assert content(res) == b"Hello, World!"
		assert res.getHeader("Content-Type") == "text/plain"
		assert res.getHeader("Content-Length") == "13"
		assert files(request("/docs/readme.md")).getHeader("Content-Type") == "text/markdown"
		assert files(request("/missing.txt")).status == 404


def test_files_index():
	with folder() as root:
		files = FileHandler(root)
		res = files(request("/"))
		assert res.status == 200
		assert content(res) == b"<h1>Home</h1>"
		assert content(files(request("/site/"))) == b"<h1>Site</h1>"
		assert content(files(request("/index.html"))) == b"<h1>Home</h1>"
		# Without index, the directory is listed instead
		res = FileHandler(root, allowIndex=False)(request("/site/"))
		assert res.status == 200
		assert b'href="index.html"' in content(res)


def test_files_listing():
	with folder() as root:
		res = FileHandler(root)(request("/docs/"))
		assert res.status == 200
		assert res.getHeader("Content-Type") == "text/html; charset=utf-8"
		body = content(res)
		assert body.startswith(b"<!DOCTYPE html>")
		assert b'href="readme.md"' in body
		assert b'href="guide.txt"' in body
		assert b'href="../"' in body
		# The root has no parent link
		assert b'href="../"' not in content(
			FileHandler(root, allowIndex=False)(request("/"))
		)


def test_files_listing_json():
	with folder() as root:
		res = FileHandler(root)(request("/docs/?format=json"))
		assert res.status == 200
		assert res.getHeader("Content-Type") == "application/json"
		entries = unjson(content(res))
		assert isinstance(entries, list)
		assert [_["name"] for _ in entries] == ["guide.txt", "readme.md"]
		assert entries[1]["type"] == "file"
		assert entries[1]["contentType"] == "text/markdown"
		assert entries[1]["contentSize"] == len("# Readme")


def test_files_listing_disabled():
	with folder() as root:
		files = FileHandler(root, showListing=False)
		assert files(request("/docs/")).status == 404
		assert files(request("/empty/")).status == 404
		assert files(request("/docs/?format=json")).status == 404
		# Indexes and files are still served
		assert files(request("/site/")).status == 200
		assert files(request("/docs/readme.md")).status == 200


def test_files_redirect():
	with folder() as root:
		files = FileHandler(root)
		res = files(request("/docs"))
		assert res.status == 301
		assert res.getHeader("Location") == "docs/"
		res = files(request("/docs?format=json"))
		assert res.getHeader("Location") == "docs/?format=json"
		res = files(request("/file.txt/"))
		assert res.status == 301
		assert res.getHeader("Location") == "../file.txt"


def test_files_traversal():
	with folder() as root:
		files = FileHandler(root / "docs")
		assert files.resolvePath("/../../file.txt") == root / "docs" / "file.txt"
		assert files(request("/../file.txt")).status == 404
		assert files(request("/%2e%2e/file.txt")).status == 404
		assert files(request("/readme.md")).status == 200


def test_files_methods():
	with folder() as root:
		files = FileHandler(root)
		res = files(request("/file.txt", "POST", body=b"data"))
		assert res.status == 405
		assert res.getHeader("Allow") == "GET, HEAD, OPTIONS"
		res = files(request("/file.txt", "OPTIONS"))
		assert res.status == 204
		assert res.getHeader("Allow") == "GET, HEAD, OPTIONS"
		assert res.body is None
		res = files(request("/file.txt", "HEAD"))
		assert res.status == 200
		assert res.getHeader("Content-Length") == "13"


if __name__ == "__main__":
	runTests(globals())

# EOF
