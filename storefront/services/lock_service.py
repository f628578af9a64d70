import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete in one step, only the owner token may release the key
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Short-lived per-order lock around payment creation, so two concurrent
    "create payment url" requests for one order cannot both insert a Payment.
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(order_id: int) -> str:
        return f"order:{order_id}:payment:lock"

    @redis_retry()
    def acquire_payment_lock(self, order_id: int, owner: str, ttl: int) -> bool:
        key = self._key(order_id)
        logger.info(f"Acquire lock {key} for {owner}")
        # SET order:1:payment:lock <owner> NX EX <ttl>
        return bool(self.redis.set(name=key, value=owner, nx=True, ex=ttl))

    @redis_retry()
    def release_payment_lock(self, order_id: int, owner: str) -> bool:
        key = self._key(order_id)
        logger.info(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)
