"""
Gunicorn Configuration

Runs the sync API with a Uvicorn worker.
"""

import os

# Server socket
bind = os.getenv("BIND", f"0.0.0.0:{os.getenv('PORT', '8080')}")

# A single worker: the sync run lock is held in process memory
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
# Full syncs over a long window can take several minutes
timeout = int(os.getenv("GUNICORN_TIMEOUT", 900))
graceful_timeout = 30
keepalive = 5

proc_name = "salesync-api"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
