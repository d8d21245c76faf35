"""Wrappers that add logging, timing and a deadline to admission handlers."""

import contextvars
import logging
import threading
import time
from datetime import timedelta

from warden.logctx import bind_logger, current_logger, log_end_time


class _FieldsAdapter(logging.LoggerAdapter):
    """Appends key=value fields to every message."""

    def process(self, msg, kwargs):
        fields = " ".join(f"{key}={value}" for key, value in self.extra.items())
        return f"{msg} [{fields}]", kwargs


def handle_with_logger(base_logger, handler):
    """Run the handler with a request-scoped logger bound."""

    def wrapped(request):
        fields = {"req-id": request.uid, "namespace": request.namespace, "name": request.name}
        with bind_logger(_FieldsAdapter(base_logger, fields)):
            return handler(request)

    return wrapped


def handler_with_time_measure(handler):
    """Log when handling starts and how long it took."""

    def wrapped(request):
        current_logger().debug("request handling started")
        start = time.monotonic()
        try:
            return handler(request)
        finally:
            log_end_time("request handling finished", start)

    return wrapped


def handle_with_timeout(timeout, handler, timeout_handler):
    """Answer with timeout_handler when handler does not finish in time."""
    limit = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)

    def wrapped(request):
        done = threading.Event()
        outcome = {}
        context = contextvars.copy_context()

        def run():
            try:
                outcome["response"] = context.run(handler, request)
            except BaseException as exc:  # re-raised in the caller
                outcome["error"] = exc
            finally:
                done.set()

        threading.Thread(target=run, daemon=True).start()
        if not done.wait(limit):
            return timeout_handler(TimeoutError("context deadline exceeded"), request)
        if "error" in outcome:
            raise outcome["error"]
        return outcome["response"]

    return wrapped