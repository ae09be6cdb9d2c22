"""
Gunicorn config for the salon booking API: bind to 0.0.0.0:$PORT (Railway/Render).
"""
import os

bind = "0.0.0.0:{}".format(os.environ.get("PORT", "8080"))
workers = int(os.environ.get("WEB_CONCURRENCY", "1"))
threads = 2
timeout = 120
loglevel = os.environ.get("LOG_LEVEL", "info")
accesslog = "-"
