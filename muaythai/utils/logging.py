"""
muaythai/utils/logging.py
─────────────────────────
Configures structured logging for the promotion service.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import request, has_request_context

FILE_HANDLER_NAME = 'muaythai-file'
STREAM_HANDLER_NAME = 'muaythai-stdout'


class RequestFormatter(logging.Formatter):
    """
    Formatter that injects request info (URL, client IP) into log records
    when a request context is available.
    """
    def format(self, record):
        if has_request_context():
            record.url = request.url
            record.remote_addr = request.remote_addr
        else:
            record.url = None
            record.remote_addr = None
        return super().format(record)


def setup_logging(app):
    """
    Configure rotating file logging: <LOG_DIR>/app.log
    Max size: 5MB
    Backup count: 5 files
    Format: timestamp | level | module | client | url | message
    """
    # Handlers are named so repeated create_app calls do not stack them
    names = {h.get_name() for h in app.logger.handlers}

    # 1. File logger, skipped when the filesystem is read-only
    log_dir = app.config.get('LOG_DIR') or os.path.join(app.root_path, '..', 'logs')
    if not app.testing and FILE_HANDLER_NAME not in names:
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=5 * 1024 * 1024,
                backupCount=5
            )
            file_handler.setFormatter(RequestFormatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(remote_addr)s | %(url)s | %(message)s'
            ))
            file_handler.setLevel(logging.INFO)
            file_handler.set_name(FILE_HANDLER_NAME)
            app.logger.addHandler(file_handler)
        except OSError as e:
            app.logger.warning(f"File logging disabled ({log_dir}): {e}")

    # 2. Stdout logger (picked up by the hosting platform)
    if STREAM_HANDLER_NAME not in names:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s'
        ))
        stream_handler.setLevel(logging.INFO)
        stream_handler.set_name(STREAM_HANDLER_NAME)
        app.logger.addHandler(stream_handler)

    # app.logger is the 'muaythai' logger, so module loggers propagate here
    app.logger.setLevel(logging.INFO)
    app.logger.info("Muay Thai promotion service startup")
