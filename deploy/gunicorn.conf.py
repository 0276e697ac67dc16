# Gunicorn config for the icao-consensus API
bind = "127.0.0.1:8000"
workers = 2  # tables are read-only per process; the mismatch log uses WAL
timeout = 30
accesslog = "-"
errorlog = "-"
loglevel = "info"
