"""
Gunicorn configuration for the widget delivery service.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Render requests are short; more workers than the management app
workers = int(os.getenv('GUNICORN_WORKERS', '4'))
worker_class = 'sync'
worker_connections = 1000
timeout = 30
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'storyslip-widgets'

preload_app = True

graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting StorySlip widget server...")


def on_exit(server):
    print("[Gunicorn] StorySlip widget server shutting down...")
