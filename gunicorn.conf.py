"""
OpsDesk API Gunicorn Configuration

Uvicorn workers serving ``opsdesk.main:app``. Host, port and worker count
follow the same API_* variables as the application settings.
"""

import os

from opsdesk.config import get_settings

settings = get_settings()

# Server socket
bind = os.getenv("BIND", f"{settings.api_host}:{settings.api_port}")
backlog = 512

# Worker processes (API_WORKERS)
workers = settings.api_workers
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 2000
max_requests_jitter = 200
timeout = 60
keepalive = 5
graceful_timeout = 30

proc_name = "opsdesk-api"

# Logging; requests are logged by RequestLoggingMiddleware
errorlog = "-"
loglevel = settings.monitoring.log_level.lower()
accesslog = None
