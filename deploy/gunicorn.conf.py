"""
Gunicorn Configuration

Production settings for the rubric assessment API.

    gunicorn -c deploy/gunicorn.conf.py assessment_engine.main:app
"""
import os
import logging
import multiprocessing

# Server socket
bind = os.environ.get("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 120
keepalive = 5

# Logging (stdout/stderr; the platform collects them)
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "assessment-engine"

# Server mechanics
daemon = False
pidfile = "/tmp/assessment-engine.pid"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    """Called just after the server is started."""
    logging.getLogger("gunicorn.error").info(f"Assessment engine ready with {workers} workers on {bind}")


def worker_int(worker):
    """Called when a worker receives SIGINT or SIGQUIT."""
    logging.getLogger("gunicorn.error").warning(f"Worker {worker.pid} interrupted")
