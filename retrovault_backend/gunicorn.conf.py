# Gunicorn configuration for the RetroVault local API
# Usage: gunicorn -c retrovault_backend/gunicorn.conf.py retrovault_backend.app:app

import os

from retrovault_backend.config import environment

bind = f"0.0.0.0:{environment.PORT}"

# Seeding is I/O bound (Nessie + Firestore), so a couple of threaded workers is enough
workers = int(os.environ.get('RETROVAULT_WORKERS', '2'))
worker_class = 'gthread'
threads = int(os.environ.get('RETROVAULT_THREADS', '4'))

# A full seed writes a profile plus a few hundred documents
timeout = 120
graceful_timeout = 30

# The Firestore client is created lazily per worker, after the fork
preload_app = False

accesslog = '-'
errorlog = '-'
loglevel = os.environ.get('RETROVAULT_LOG_LEVEL', 'info')

proc_name = 'retrovault-api'


def when_ready(server):
    server.log.info("RetroVault local API ready on %s", bind)


def worker_abort(worker):
    worker.log.warning("Worker %s aborted (likely a slow sync request)", worker.pid)
