"""Application configuration: defaults, YAML loading and change watching."""

from __future__ import annotations

import dataclasses
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

_UNIT_NANOS = {
    "ns": 1, "us": 10**3, "µs": 10**3, "μs": 10**3,
    "ms": 10**6, "s": 10**9, "m": 60 * 10**9, "h": 3600 * 10**9,
}
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION = re.compile(rf"([-+]?)((?:{_COMPONENT.pattern})+)")


def parse_duration(text):
    """Parse a duration such as "300ms", "1.5h" or "2h45m"; raise ValueError if invalid."""
    if text in ("0", "+0", "-0"):
        return timedelta(0)
    match = _DURATION.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid duration {text!r}")
    nanos = sum(Decimal(n) * _UNIT_NANOS[u] for n, u in _COMPONENT.findall(match.group(2)))
    if nanos > 2**63 - 1:
        raise ValueError(f"invalid duration {text!r}: out of range")
    sign = -1 if match.group(1) == "-" else 1
    return timedelta(microseconds=sign * int(nanos) / 1000)


def _convert(kind, value, key):
    if kind == "str" and not isinstance(value, (dict, list)):
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    if kind == "int" and isinstance(value, int) and not isinstance(value, bool):
        return value
    if kind == "bool" and isinstance(value, bool):
        return value
    if kind == "timedelta" and not isinstance(value, bool):
        if isinstance(value, int):
            return timedelta(microseconds=value / 1000)
        if isinstance(value, str):
            try:
                return parse_duration(value)
            except ValueError as exc:
                raise ValueError(f"field {key!r}: {exc}") from exc
    raise ValueError(f"cannot decode {value!r} into {kind} field {key!r}")


def _key(yaml_key):
    return field(metadata={"key": yaml_key})


@dataclass
class NotaryConfig:
    """Where and how image signatures are checked."""

    url: str = field(default="https://signing-dev.repositories.cloud.sap", metadata={"key": "URL"})
    timeout: timedelta = timedelta(seconds=30)
    allowed_registries: str = ""


@dataclass
class AdmissionConfig:
    """Settings of the admission webhook server."""

    system_namespace: str = "default"
    service_name: str = "warden-admission"
    secret_name: str = "warden-admission-cert"
    timeout: timedelta = timedelta(seconds=2)
    port: int = 8443
    strict_mode: bool = False


@dataclass
class OperatorConfig:
    """Settings of the controller manager."""

    metrics_bind_address: str = ":8080"
    health_probe_bind_address: str = ":8081"
    leader_elect: bool = False
    pod_reconciler_requeue_after: timedelta = timedelta(minutes=60)


@dataclass
class LoggingConfig:
    """Log level and output format."""

    level: str = "info"
    format: str = "text"


@dataclass
class Config:
    """The whole application configuration."""

    notary: NotaryConfig = field(default_factory=NotaryConfig)
    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    operator: OperatorConfig = field(default_factory=OperatorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _yaml_key(spec):
    if "key" in spec.metadata:
        return spec.metadata["key"]
    head, *rest = spec.name.split("_")
    return head + "".join(part.title() for part in rest)


def _apply(target, data, where):
    if not isinstance(data, dict):
        raise ValueError(f"expected a mapping at {where or 'top level'}, got {type(data).__name__}")
    for spec in dataclasses.fields(target):
        key = _yaml_key(spec)
        value = data.get(key)
        if value is None:
            continue
        path = f"{where}.{key}" if where else key
        if dataclasses.is_dataclass(getattr(target, spec.name)):
            _apply(getattr(target, spec.name), value, path)
        else:
            setattr(target, spec.name, _convert(spec.type, value, path))


def load(path):
    """Load configuration from a YAML file over the defaults.

    Raises OSError when the file cannot be read and ValueError when its content does not fit.
    """
    source = os.path.abspath(path)
    with open(source, encoding="utf-8") as handle:
        content = handle.read()
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid configuration in {source}: {exc}") from exc
    config = Config()
    if document is not None:
        _apply(config, document, "")
    return config


class _ReloadHandler(FileSystemEventHandler):
    def __init__(self, logger, on_change):
        super().__init__()
        self._logger = logger
        self._on_change = on_change

    def on_any_event(self, event):
        if event.event_type in ("opened", "closed", "closed_no_write"):
            return
        self._logger.debug("event name: %s, op: %s", event.src_path, event.event_type)
        self._logger.info("Config changed, restarting")
        self._on_change(event)


def watch(file_path, logger, on_change):
    """Call on_change on any change in the config file's directory; return the running observer."""
    directory = os.path.dirname(os.fspath(file_path)) or "."
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"while adding filePath to watch: no such directory {directory!r}")
    observer = Observer()
    observer.schedule(_ReloadHandler(logger, on_change), directory, recursive=False)
    observer.start()
    logger.info("config watcher started for: %s", os.fspath(file_path))
    return observer