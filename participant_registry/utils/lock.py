from contextlib import contextmanager
import time
import uuid
from participant_registry.settings import settings
from participant_registry.store.redis_conn import get_redis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockTimeout(RuntimeError):
    pass


@contextmanager
def registry_lock(ttl_ms: int = 0, spins: int = 20, spin_sec: float = 0.05):
    """
    Single-writer lock over the registry state document.
    Every mutating transaction runs inside it so guards and writes never interleave.
    """
    r = get_redis()
    ttl_ms = int(ttl_ms or settings.REGISTRY_LOCK_TTL_MS)
    key = f"lock:{settings.REGISTRY_STATE_KEY}"
    token = uuid.uuid4().hex
    acquired = r.set(key, token, px=ttl_ms, nx=True)

    try:
        if not acquired:
            for _ in range(spins):
                time.sleep(spin_sec)
                if r.set(key, token, px=ttl_ms, nx=True):
                    acquired = True
                    break

            if not acquired:
                raise LockTimeout(f"Could not acquire registry lock {key}")

        yield
    finally:
        if acquired:
            # Release only if we still own it
            r.eval(_RELEASE_SCRIPT, 1, key, token)
