#!/usr/bin/env python3
import sys
import os

print("Running preflight check...")
try:
    # Set dummy env vars to avoid KeyErrors during config load if any
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

    import app.main
    print("Import app.main: OK")

    from app.settings import settings
    from app.ivalt.config import IvaltConfig
    cfg = IvaltConfig.from_settings(settings)
    print(f"iVALT base URL: {cfg.baseUrl}")
    print(f"iVALT API key configured: {cfg.configured}")
    print(f"API timeout: {cfg.timeoutMs} ms, poll interval: {cfg.pollIntervalMs} ms")
    print(f"Login poll ceiling: {settings.AUTH_MAX_POLL_ATTEMPTS} attempts, "
          f"enrollment timeout: {settings.ENROLL_TIMEOUT_MS} ms")
    if not cfg.configured:
        print("[WARN] IVALT_API_KEY is empty: every challenge will fail with ivaltSendFailed.")

    if "--redis" in sys.argv:
        from app.store.redis_conn import get_redis
        get_redis().ping()
        print("Redis ping: OK")

    print("Preflight check passed.")
    sys.exit(0)
except Exception as e:
    print(f"Preflight check FAILED: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
