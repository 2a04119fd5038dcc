import os

# Gunicorn config
bind = os.environ.get("BIND", "0.0.0.0:8000")
# The progress feed and WebSocket registry live in process memory; one
# worker keeps every subscriber on the same feed.
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
wsgi_app = "accountability.main:app"
loglevel = os.environ.get("LOG_LEVEL", "info")
accesslog = "/var/log/gunicorn/access.log"
errorlog = "/var/log/gunicorn/error.log"
