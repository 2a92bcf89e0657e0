import multiprocessing
import os

wsgi_app = "planning.main:app"
bind = os.getenv("PLANNING_BIND", "127.0.0.1:8000")
workers = int(os.getenv("PLANNING_WORKERS", (multiprocessing.cpu_count() * 2) + 1))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
loglevel = "info"
accesslog = "-"
errorlog = "-"
