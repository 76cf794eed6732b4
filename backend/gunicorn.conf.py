bind = "0.0.0.0:8000"
# Profiles and chat sessions live in process memory: keep a single worker.
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 120
keepalive = 5
accesslog = "-"
errorlog = "-"
loglevel = "info"
