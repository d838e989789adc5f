# dogflush/cli.py
from __future__ import annotations

import json
import logging
import re
import time
from typing import Callable, Dict, List, Optional, Sequence

import typer

from dogflush.__about__ import __app_name__, __version__
from dogflush.aggregator import Aggregator
from dogflush.api import DatadogAPI
from dogflush.config import settings
from dogflush.hostmetrics import HostMetricsFlusher
from dogflush.hosttags import HostTagger
from dogflush.logs import log_errors, setup_logging
from dogflush.periodic import MultiTask, Periodic
from dogflush.series import MetricSeries

log = logging.getLogger(__name__)

app = typer.Typer(help="Send metrics to Datadog from the command line.", add_completion=False)

_DURATION = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(ms|s|m|h)?\s*$")
_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


class CommandError(Exception):
    pass


def parse_duration(s: str) -> float:
    """'250ms', '2s', '1.5m', or bare seconds -> seconds"""
    m = _DURATION.match(s or "")
    if not m:
        raise CommandError(f"invalid duration {s!r}")
    return float(m.group(1)) * _UNITS[m.group(2)]


def parse_value(s: str) -> float:
    try:
        return float(s)
    except ValueError:
        raise CommandError(f"invalid number {s!r}") from None


class EchoUploader:
    """--dry-run uploader: one JSON object per series on stdout."""

    def send(self, series: Sequence[MetricSeries]):
        for s in series:
            typer.echo(json.dumps(s.wire(), sort_keys=True))


class Script:
    """
    Runs a flat command list against an aggregator, left to right.
    Each command consumes its own arguments and returns the rest.
    """

    def __init__(self, aggregator, namespace: str = "", sleep: Callable[[float], None] = time.sleep):
        self.aggregator = aggregator
        self.namespace = namespace
        self.sleep_fn = sleep
        self.commands: Dict[str, Callable[[List[str]], List[str]]] = {
            "g": self.gauge, "gauge": self.gauge,
            "c": self.count, "count": self.count,
            "i": self.incr, "incr": self.incr,
            "d": self.decr, "decr": self.decr,
            "h": self.histogram, "histogram": self.histogram,
            "t": self.timing, "timing": self.timing,
            "s": self.sleep, "sleep": self.sleep,
            "f": self.flush, "flush": self.flush,
        }

    def _take(self, cmd: str, args: List[str], n: int) -> List[str]:
        if len(args) < n:
            raise CommandError(f"{cmd}: expected {n} argument(s), got {len(args)}")
        return args[:n]

    def gauge(self, args: List[str]) -> List[str]:
        name, val = self._take("gauge", args, 2)
        log.info("gauge %s%s", self.namespace, name)
        self.aggregator.gauge(self.namespace + name, parse_value(val))
        return args[2:]

    def count(self, args: List[str]) -> List[str]:
        name, val = self._take("count", args, 2)
        log.info("count %s%s", self.namespace, name)
        self.aggregator.count(self.namespace + name, parse_value(val))
        return args[2:]

    def incr(self, args: List[str]) -> List[str]:
        (name,) = self._take("incr", args, 1)
        log.info("incr %s%s", self.namespace, name)
        self.aggregator.incr(self.namespace + name)
        return args[1:]

    def decr(self, args: List[str]) -> List[str]:
        (name,) = self._take("decr", args, 1)
        log.info("decr %s%s", self.namespace, name)
        self.aggregator.decr(self.namespace + name)
        return args[1:]

    def histogram(self, args: List[str]) -> List[str]:
        name, val = self._take("histogram", args, 2)
        log.info("histogram %s%s", self.namespace, name)
        self.aggregator.histogram(self.namespace + name, parse_value(val))
        return args[2:]

    def timing(self, args: List[str]) -> List[str]:
        name, val = self._take("timing", args, 2)
        log.info("timing %s%s", self.namespace, name)
        self.aggregator.timing(self.namespace + name, parse_duration(val))
        return args[2:]

    def sleep(self, args: List[str]) -> List[str]:
        (val,) = self._take("sleep", args, 1)
        log.info("sleep %s", val)
        self.sleep_fn(parse_duration(val))
        return args[1:]

    def flush(self, args: List[str]) -> List[str]:
        log.info("flush")
        self.aggregator.flush()
        return args

    def run(self, args: List[str]):
        while args:
            cmd, args = args[0], args[1:]
            fn = self.commands.get(cmd)
            if fn is None:
                raise CommandError(f"unknown command: {cmd!r}")
            args = fn(args)


def normalize_namespace(namespace: str) -> str:
    if namespace and not namespace.endswith("."):
        namespace += "."
    return namespace


def version_callback(value: bool):
    if value:
        typer.echo(f"{__app_name__} {__version__}")
        raise typer.Exit()


@app.command(context_settings={"allow_interspersed_args": False})
def main(
    commands: Optional[List[str]] = typer.Argument(None, help="g NAME VAL | c NAME VAL | i NAME | d NAME | h NAME VAL | t NAME SECS | s DURATION | f"),
    namespace: str = typer.Option("", "--namespace", help="Prefix for every metric name"),
    hostname: str = typer.Option("", "--hostname", help="Host label; defaults to DD_HOSTNAME or the OS hostname"),
    hosttags: str = typer.Option("", "--hosttags", help="Comma separated host tags to register"),
    system: bool = typer.Option(False, "--system", help="Also emit host CPU and memory metrics"),
    interval: float = typer.Option(settings.flush_interval_s, "--interval", help="Seconds between background flushes"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print series as JSON instead of uploading"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    version: bool = typer.Option(False, "--version", callback=version_callback, is_eager=True),
):
    setup_logging("debug" if verbose else "info")

    if interval <= 0:
        log.error("--interval must be positive, got %s", interval)
        raise typer.Exit(code=1)

    namespace = normalize_namespace(namespace)
    if namespace:
        log.info("setting namespace to %r", namespace)

    host = hostname or settings.resolved_hostname()
    log.info("setting hostname to %r", host)

    api: Optional[DatadogAPI] = None
    if dry_run:
        uploader = EchoUploader()
    elif settings.api_key:
        api = DatadogAPI(
            settings.api_key,
            settings.app_key,
            timeout=settings.upload_timeout_s,
            endpoint=settings.endpoint,
            attempts=settings.upload_attempts,
        )
        uploader = api
    else:
        log.error("DD_API_KEY is not set (use --dry-run to print series instead)")
        raise typer.Exit(code=1)

    aggregator = Aggregator(uploader, host=host)
    tasks = MultiTask()
    tags = [t.strip() for t in hosttags.split(",") if t.strip()]

    failed = False
    try:
        tasks.append(Periodic(aggregator, interval, on_error=log_errors(log)))

        if system:
            log.info("turning on system metrics")
            tasks.append(Periodic(HostMetricsFlusher(aggregator), interval, on_error=log_errors(log, "system metrics")))

        if tags and api is not None:
            log.info("setting host tags to %s", tags)
            tasks.append(Periodic(HostTagger(api, host, tags), settings.hosttag_interval_s, on_error=log_errors(log, "host tags")))
        elif tags:
            log.info("dry run: not setting host tags %s", tags)

        Script(aggregator, namespace).run(list(commands or []))
    except Exception as e:
        log.error("%s", e)
        failed = True
    finally:
        try:
            tasks.close()
        except Exception as e:
            log.error("final flush failed: %s", e)
            failed = True

    if failed:
        raise typer.Exit(code=1)


def run():
    app()


if __name__ == "__main__":
    run()
