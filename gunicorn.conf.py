import os

bind = f"0.0.0.0:{os.getenv('PORT', 8000)}"
# OTP codes live in process memory; more than one worker needs sticky sessions
workers = int(os.getenv('WEB_CONCURRENCY', 1))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = int(os.getenv('GUNICORN_TIMEOUT', 60))
graceful_timeout = 30
max_requests = 1000
max_requests_jitter = 100
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
accesslog = "-"
