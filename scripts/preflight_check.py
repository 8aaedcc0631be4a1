#!/usr/bin/env python3
import sys
import os

print("Running preflight import check...")
try:
    # Set dummy env vars to avoid KeyErrors during config load if any
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

    import participant_registry.main
    print("Import participant_registry.main: OK")

    import participant_registry.queue.jobs
    print("Import participant_registry.queue.jobs: OK")

    print("Preflight check passed.")
    sys.exit(0)
except Exception as e:
    print(f"Preflight check FAILED: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
