# Copyright (c) 2026 Mohammed Hassan. All rights reserved.
# Proprietary and confidential. Unauthorized copying, modification, distribution, or use is prohibited.

import enum
import json
import logging
import queue
import sys
import threading
import contextvars
from datetime import datetime, timezone

import requests
from pythonjsonlogger import jsonlogger

from .config import settings

request_id_var = contextvars.ContextVar("request_id", default=None)

SERVICE_NAME = "marketing-dashboard"

# Secrets to redact
SECRETS = ["token", "secret", "password", "key", "authorization", "cookie"]
REDACTED = "***REDACTED***"

# LogRecord attributes that `extra` may not overwrite
_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

def _redact(value, key: str = ""):
    if any(s in key.lower() for s in SECRETS) and isinstance(value, str):
        return REDACTED
    if isinstance(value, dict):
        return {k: _redact(v, str(k)) for k, v in value.items()}
    return value

class RedactingJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')
        log_record['level'] = (log_record.get('level') or record.levelname).upper()

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        log_record["environment"] = "production" if settings.is_production else "local"
        log_record["service_name"] = SERVICE_NAME

        for key, value in list(log_record.items()):
            log_record[key] = _redact(value, key)

class AxiomHandler(logging.Handler):
    """Ships JSON records to an Axiom dataset in batches from a daemon thread."""

    def __init__(self, token: str, dataset: str, url: str = "https://api.axiom.co",
                 org_id: str | None = None, batch_size: int = 50):
        super().__init__()
        self.endpoint = f"{url.rstrip('/')}/v1/datasets/{dataset}/ingest"
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if org_id:
            self.headers["X-Axiom-Org-Id"] = org_id
        self.batch_size = batch_size
        self.queue = queue.Queue(maxsize=10000)
        self.worker = threading.Thread(target=self._ship_logs, name="axiom-shipper", daemon=True)
        self.worker.start()

    @classmethod
    def from_settings(cls) -> "AxiomHandler | None":
        if not settings.axiom_token or not settings.axiom_dataset:
            return None
        return cls(settings.axiom_token, settings.axiom_dataset, settings.axiom_url, settings.axiom_org_id)

    def _ship_logs(self):
        batch = []
        while True:
            try:
                batch.append(self.queue.get(timeout=3.0))
            except queue.Empty:
                pass

            if batch and (len(batch) >= self.batch_size or self.queue.empty()):
                self._send(batch)
                batch = []

    def _send(self, batch):
        try:
            requests.post(self.endpoint, headers=self.headers, json=batch, timeout=5.0)
        except requests.RequestException as e:
            # stderr only: logging from here would feed back into this handler
            print(f"Axiom shipping failed ({len(batch)} records dropped): {e}", file=sys.stderr)

    def emit(self, record):
        try:
            self.queue.put_nowait(json.loads(self.format(record)))
        except queue.Full:
            pass
        except Exception:
            self.handleError(record)

def setup_logging(level: str | None = None):
    logger = logging.getLogger()
    logger.setLevel((level or settings.log_level).upper())

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = RedactingJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    axiom_handler = AxiomHandler.from_settings()
    if axiom_handler:
        axiom_handler.setFormatter(formatter)
        logger.addHandler(axiom_handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

def log_event(event: str, level: str = "info", **fields):
    """Emit a named structured event; None-valued fields are dropped."""
    extra = {"event": event}
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, enum.Enum):
            value = value.value
        # e.g. "name" would clash with the logger name
        extra[f"{key}_" if key in _RESERVED else key] = value

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
    logging.getLogger(SERVICE_NAME).log(log_level, event, extra=extra)
