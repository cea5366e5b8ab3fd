import logging
from enum import Enum

from .exceptions import ConsistencyLevelUnsupported, ConsistencyViolation

logger = logging.getLogger(__name__)


class ConsistencyLevel(str, Enum):
    """
    Read consistency levels a store may offer, strongest first.
    """

    STRONG = "Strong"
    BOUNDED_STALENESS = "BoundedStaleness"
    SESSION = "Session"
    CONSISTENT_PREFIX = "ConsistentPrefix"
    EVENTUAL = "Eventual"

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    def is_stronger_than(self, other: "ConsistencyLevel") -> bool:
        return self.rank < other.rank


_ORDER = list(ConsistencyLevel)


def check_consistency_level(store) -> ConsistencyLevel:
    """
    Fail with ConsistencyViolation unless the store's effective consistency
    level is Strong.

    The effective level is the client-side override when one is set, else the
    account default. A store refusing a client level higher than its account
    allows is reported the same way.

    Returns:
        the effective level (always STRONG)
    """
    override = store.client_consistency_level
    try:
        account_level = store.query_consistency_level()
    except ConsistencyLevelUnsupported as e:
        logger.error("Store rejected client consistency level %s: %s", override, e)
        raise ConsistencyViolation(override) from e

    level = override if override is not None else account_level
    if level is not ConsistencyLevel.STRONG:
        logger.error("Consistency level %s is too weak for locking", level.value)
        raise ConsistencyViolation(level)

    logger.debug("Store consistency level verified: %s", level.value)
    return level
