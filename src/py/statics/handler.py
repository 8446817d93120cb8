from .config import Config
from .features.access import withAccessKey, withReferrers
from .features.cors import withCORS
from .features.logging import withLogging
from .features.prefix import withPrefix
from .files import FileHandler
from .http.model import THandler

# --
# The root handler is a pipeline of independent layers over the base file
# handler. From the innermost to the outermost:
#
# - the base handler, serving files from the folder
# - the prefix layer, removing `urlPrefix` (404 outside of it)
# - the referrers layer (403 unless from an allowed referrer)
# - the access key layer (403 without the key)
# - the CORS layer, outermost so that rejections carry its headers, which
#   also answers preflight requests
# - the request log, in debug mode only
#
# A layer that rejects a request short-circuits everything below it, so no
# file is ever read or listed before the access checks pass.


def compose(config: Config, base: THandler | None = None) -> THandler:
	"""Builds the root request handler for the given configuration, `base`
	replacing the file handler when given."""
	handler: THandler = (
		FileHandler(
			config.folder,
			showListing=config.showListing,
			allowIndex=config.allowIndex,
		)
		if base is None
		else base
	)
	if config.urlPrefix:
		handler = withPrefix(handler, config.urlPrefix)
	if config.referrers:
		handler = withReferrers(handler, config.referrers)
	if config.accessKey:
		handler = withAccessKey(handler, config.accessKey)
	if config.cors:
		handler = withCORS(handler)
	if config.debug:
		handler = withLogging(handler)
	return handler


# EOF
