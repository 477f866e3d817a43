import os

# Gunicorn config variables
bind = os.getenv("BIND", "127.0.0.1:8000")
# Exactly one worker: the process is the single writer of the snapshot file.
# More workers would race on load/persist across processes.
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
# The app is built on worker boot, not at import time
wsgi_app = "fadeboard.main:create_app()"
timeout = 120
keepalive = 5
accesslog = os.getenv("ACCESS_LOG", "-")
errorlog = os.getenv("ERROR_LOG", "-")
loglevel = "info"
daemon = False
