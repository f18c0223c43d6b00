# Gunicorn config - simple sensible defaults
import os

bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"
workers = 2
# One HotPepper call per location event, bounded by SEARCH_TIMEOUT_SEC,
# so requests finish well below this.
timeout = 30
accesslog = '-'  # stdout
errorlog = '-'   # stderr
