from enum import Enum
from typing import NamedTuple
import resource


class LimitType(Enum):
	Files = resource.RLIMIT_NOFILE
	FileSize = resource.RLIMIT_FSIZE


# A static server holds one descriptor per connection and one per file being
# sent, the open files limit is what caps concurrent clients.
REASONABLE_LIMITS: dict[LimitType, int] = {
	LimitType.Files: 10 * 10240,
	LimitType.FileSize: int(1e12),
}


class Limit(NamedTuple):
	type: LimitType
	soft: int
	hard: int


def limit(scope: LimitType) -> Limit:
	return Limit(scope, *resource.getrlimit(scope.value))


def unlimit(
	scope: LimitType, ratio: float = 1.0, *, maximum: int | None = 0
) -> int | bool:
	"""Raises the soft limit towards the hard limit, capped at `maximum`
	(or the reasonable default when `maximum` is 0)."""
	lm = limit(scope)
	if lm.soft == resource.RLIM_INFINITY:
		return lm.soft
	maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
	if lm.hard == resource.RLIM_INFINITY:
		target = max(lm.soft, maximum) if maximum else lm.soft
	else:
		target = int(lm.soft + ratio * (lm.hard - lm.soft))
		if maximum:
			target = max(lm.soft, min(maximum, target))
	try:
		resource.setrlimit(scope.value, (target, lm.hard))
		return target
	except (ValueError, OSError):
		return False


# EOF
