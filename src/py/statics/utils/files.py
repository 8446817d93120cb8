import mimetypes
from pathlib import Path
from typing import NamedTuple

mimetypes.init()

# Overrides for what `mimetypes` gets wrong or does not know
MIME_TYPES: dict[str, str] = dict(
	bz2="application/x-bzip",
	gz="application/x-gzip",
	mjs="text/javascript",
	md="text/markdown",
	wasm="application/wasm",
)


class FileEntry(NamedTuple):
	"""Describes a directory entry, as returned by JSON listings."""

	type: str
	name: str
	contentType: str | None = None
	contentSize: int | None = None
	updatedAt: float | None = None

	@staticmethod
	def FromPath(path: Path | str) -> "FileEntry":
		p = Path(path)
		if p.is_dir():
			return FileEntry(
				type="directory",
				name=p.name,
				updatedAt=p.stat().st_mtime,
			)
		else:
			stats = p.stat() if p.exists() else None
			return FileEntry(
				type="symlink" if p.is_symlink() else "file",
				name=p.name,
				contentType=contentType(p),
				contentSize=stats.st_size if stats else None,
				updatedAt=stats.st_mtime if stats else None,
			)


def contentType(path: Path | str) -> str:
	"""Guesses the content type from the given path"""
	name = str(path)
	return (
		res
		if (res := MIME_TYPES.get(name.rsplit(".", 1)[-1].lower()))
		else mimetypes.guess_type(name)[0] or "application/octet-stream"
	)


# EOF
