# Gunicorn configuration for production deployment
# Usage: gunicorn -c gunicorn_config.py "main:build_app()"

import os

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', '3000')}"
backlog = 2048

# Worker processes
# One process: the artifact store lives in memory, so a download must hit
# the process that rendered it. Concurrency comes from threads.
workers = 1
worker_class = "gthread"
threads = int(os.environ.get("WORKER_THREADS", "8"))
timeout = 1200  # fetch (300s) + render (600s) + headroom
graceful_timeout = 60
keepalive = 5

# Logging
accesslog = "-"  # Log to stdout
errorlog = "-"   # Log to stderr
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "shorts-processor"

# Server mechanics
daemon = False
pidfile = None
umask = 0o077  # rendered clips and fetched segments stay private to the service user
user = None
group = None
tmp_upload_dir = None

# Request limits
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190
