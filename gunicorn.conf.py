# Gunicorn configuration for Spines
#
# The catalog search cache and the rate limiter counters are process-local,
# so this application MUST run with a single worker.
import os

workers = 1
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
bind = "0.0.0.0:8080"
timeout = int(os.environ.get("GUNICORN_TIMEOUT_SECONDS", "60"))
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT_SECONDS", "30"))


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s). Single-worker mode active.", worker.pid)
