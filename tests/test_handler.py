import hashlib
import io

from statics.config import Config
from statics.features.access import accessCode
from statics.features.prefix import stripPrefix
from statics.handler import compose
from statics.utils.logging import setStream

from harness import Recorder, content, folder, request, runTests

# --
# Properties of the composed handler, each layer being toggled on its own
# and in combination.

CORS_ORIGIN: str = "Access-Control-Allow-Origin"
REFERRER: str = "http://example.com/"


def test_compose_base():
	with folder() as root:
		handler = compose(Config(folder=str(root)))
		res = handler(request("/index.html"))
		assert res.status == 200
		assert content(res) == b"<h1>Home</h1>"
		assert res.getHeader(CORS_ORIGIN) is None


def test_compose_base_double():
	base = Recorder()
	handler = compose(Config(), base)
	assert handler is base
	assert handler(request("/file.txt")).status == 200
	assert base.paths == ["/file.txt"]


def test_compose_listing():
	with folder() as root:
		assert compose(Config(folder=str(root)))(request("/docs/")).status == 200
		handler = compose(Config(folder=str(root), showListing=False))
		assert handler(request("/docs/")).status == 404
		assert handler(request("/empty/")).status == 404


def test_prefix_strip():
	assert stripPrefix("/app/x", "/app") == "/x"
	assert stripPrefix("/app/", "/app") == "/"
	assert stripPrefix("/app", "/app") == ""
	assert stripPrefix("/application", "/app") is None
	assert stripPrefix("/x", "/app") is None


def test_prefix():
	base = Recorder()
	handler = compose(Config(urlPrefix="/app"), base)
	assert handler(request("/app/x")).status == 200
	assert handler(request("/app/docs/readme.md")).status == 200
	assert base.paths == ["/x", "/docs/readme.md"]
	assert handler(request("/x")).status == 404
	assert handler(request("/application/x")).status == 404
	assert handler(request("/")).status == 404
	assert base.paths == ["/x", "/docs/readme.md"]
	res = handler(request("/app?format=json"))
	assert res.status == 301
	assert res.getHeader("Location") == "/app/?format=json"


def test_prefix_files():
	with folder() as root:
		handler = compose(Config(folder=str(root), urlPrefix="/static/files"))
		res = handler(request("/static/files/file.txt"))
		assert res.status == 200
		assert content(res) == b"Hello, World!"
		assert content(handler(request("/static/files/"))) == b"<h1>Home</h1>"
		assert handler(request("/file.txt")).status == 404


def test_referrers():
	base = Recorder()
	handler = compose(Config(referrers=(REFERRER, "https://other.org")), base)
	assert handler(request("/x")).status == 403
	assert handler(request("/x", headers={"Referer": ""})).status == 403
	assert handler(request("/x", headers={"Referer": "HTTP://EXAMPLE.COM/"})).status == 403
	assert (
		handler(request("/x", headers={"Referer": f"http://evil.com/?{REFERRER}"})).status
		== 403
	)
	assert base.paths == []
	assert handler(request("/x", headers={"Referer": f"{REFERRER}page"})).status == 200
	assert handler(request("/y", headers={"Referer": "https://other.org/a"})).status == 200
	assert base.paths == ["/x", "/y"]


def test_access_key():
	base = Recorder()
	handler = compose(Config(accessKey="secret"), base)
	assert handler(request("/x")).status == 403
	assert handler(request("/x?key=secre")).status == 403
	assert handler(request("/x?key=secret2")).status == 403
	assert handler(request("/x", headers={"X-Access-Key": "Secret"})).status == 403
	assert handler(request("/x?code=nope")).status == 403
	assert base.paths == []
	assert handler(request("/x?key=secret")).status == 200
	assert handler(request("/x", headers={"X-Access-Key": "secret"})).status == 200
	assert handler(request(f"/x?code={accessCode('/x', 'secret')}")).status == 200
	# A code is only valid for its path
	assert handler(request(f"/y?code={accessCode('/x', 'secret')}")).status == 403
	assert base.paths == ["/x", "/x", "/x"]


def test_access_code():
	code = accessCode("/file.txt", "key")
	assert len(code) == 32
	assert code == code.upper()
	assert code != accessCode("/file.txt", "other")
	assert code == hashlib.md5(b"/file.txtkey").hexdigest().upper()


def test_access_key_disabled():
	base = Recorder()
	handler = compose(Config(accessKey=""), base)
	assert handler(request("/x")).status == 200
	assert handler(request("/x?key=anything")).status == 200
	assert handler(request("/x", headers={"X-Access-Key": "anything"})).status == 200
	assert base.paths == ["/x", "/x", "/x"]


def test_cors():
	base = Recorder()
	res = compose(Config(cors=True), base)(request("/x"))
	assert res.status == 200
	assert res.getHeader(CORS_ORIGIN) == "*"
	assert res.getHeader("Access-Control-Allow-Headers") == "*"
	assert res.getHeader("Access-Control-Allow-Methods") == "GET, HEAD, OPTIONS"
	assert compose(Config(cors=False), base)(request("/x")).getHeader(CORS_ORIGIN) is None


def test_cors_preflight():
	base = Recorder()
	preflight = {
		"Origin": "http://other.org",
		"Access-Control-Request-Method": "GET",
		"Access-Control-Request-Headers": "X-Access-Key",
	}
	handler = compose(Config(cors=True, accessKey="secret"), base)
	res = handler(request("/x", "OPTIONS", headers=preflight))
	assert res.status == 204
	assert res.getHeader(CORS_ORIGIN) == "*"
	assert res.getHeader("Access-Control-Allow-Headers") == "*"
	assert base.paths == []
	# The actual request then needs the key
	assert handler(request("/x", headers={"Origin": "http://other.org"})).status == 403
	res = handler(request("/x", headers={"X-Access-Key": "secret"}))
	assert res.status == 200
	assert base.paths == ["/x"]
	# Plain OPTIONS requests are still checked
	assert handler(request("/x", "OPTIONS")).status == 403
	# Without CORS, preflights are not answered
	handler = compose(Config(accessKey="secret"), base)
	assert handler(request("/x", "OPTIONS", headers=preflight)).status == 403


def test_cors_rejections():
	base = Recorder()
	handler = compose(
		Config(cors=True, urlPrefix="/app", accessKey="secret", referrers=(REFERRER,)),
		base,
	)
	for res, status in (
		(handler(request("/app/x", headers={"Referer": REFERRER})), 403),
		(handler(request("/app/x?key=secret")), 403),
		(handler(request("/x?key=secret", headers={"Referer": REFERRER})), 404),
	):
		assert res.status == status
		assert res.getHeader(CORS_ORIGIN) == "*"
	assert base.paths == []
	res = handler(request("/app/x?key=secret", headers={"Referer": REFERRER}))
	assert res.status == 200
	assert res.getHeader(CORS_ORIGIN) == "*"
	assert base.paths == ["/x"]


def test_scenario_prefix_key():
	with folder() as root:
		handler = compose(
			Config(folder=str(root), urlPrefix="/app", accessKey="secret")
		)
		assert handler(request("/app/file.txt")).status == 403
		res = handler(request("/app/file.txt?key=secret"))
		assert res.status == 200
		assert content(res) == b"Hello, World!"
	base = Recorder()
	handler = compose(Config(urlPrefix="/app", accessKey="secret"), base)
	assert handler(request("/app/file.txt")).status == 403
	assert handler(request("/app/file.txt?key=secret")).status == 200
	assert base.paths == ["/file.txt"]


def test_combinations():
	# Every combination of layers lets through exactly the requests that
	# satisfy all of the active ones.
	for prefix in ("", "/app"):
		for referrers in ((), (REFERRER,)):
			for key in ("", "secret"):
				for cors in (False, True):
					base = Recorder()
					handler = compose(
						Config(
							urlPrefix=prefix, referrers=referrers, accessKey=key, cors=cors
						),
						base,
					)
					headers = {"Referer": REFERRER, "X-Access-Key": "secret"}
					res = handler(request(f"{prefix}/x", headers=headers))
					assert res.status == 200
					assert base.paths == ["/x"]
					assert (res.getHeader(CORS_ORIGIN) == "*") is cors
					res = handler(request(f"{prefix}/x", headers={"X-Access-Key": "nope"}))
					assert res.status == (403 if referrers or key else 200)


def test_debug_logging():
	stream = io.StringIO()
	previous = setStream(stream)
	try:
		handler = compose(Config(debug=True), Recorder())
		assert handler(request("/logged.txt")).status == 200
	finally:
		setStream(previous)
	output = stream.getvalue()
	assert "Request" in output
	assert "/logged.txt" in output


if __name__ == "__main__":
	runTests(globals())

# EOF
