"""
Seed an empty registry state document in Redis with the deployer as admin.
Idempotent: an existing document is never overwritten (SET NX), so this is
safe to run on every deploy.
"""
import json
import os
import sys
from redis import Redis
from participant_registry.store.models import Role

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
KEY = os.getenv("REGISTRY_STATE_KEY", "registry:state")
DEPLOYER = os.getenv("REGISTRY_DEPLOYER", "deployer")

def initial_state(deployer: str = DEPLOYER) -> dict:
    return {
        "admin": deployer,
        "paused": False,
        "users": {},
        "roleCounts": {r.value: 0 for r in Role},
        "height": 1,
    }

def main(deployer: str = DEPLOYER):
    if not deployer.strip():
        print("ERROR: REGISTRY_DEPLOYER must not be empty")
        sys.exit(1)
    r = Redis.from_url(REDIS_URL, decode_responses=True)
    created = r.set(KEY, json.dumps(initial_state(deployer)), nx=True)
    if created:
        print(f"OK: wrote {KEY} into {REDIS_URL} (admin={deployer})")
    else:
        print(f"SKIP: {KEY} already present in {REDIS_URL}")
    return bool(created)

if __name__ == "__main__":
    main()
