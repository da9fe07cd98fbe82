"""
Stream stack events to the terminal while a stack operation runs.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import click
from botocore.exceptions import BotoCoreError, ClientError

from .stack import is_not_found_error

logger = logging.getLogger(__name__)

DEFAULT_MONITOR_INTERVAL = 2.0


def _status_color(status: str) -> str:
    if "FAILED" in status:
        return "red"
    if "ROLLBACK" in status:
        return "yellow"
    if status.endswith("_COMPLETE"):
        return "green"
    return "blue"


class StackActivityMonitor:
    """
    Poll DescribeStackEvents in a background thread and print new events.

    Only events newer than the moment the monitor was created are shown.
    Polling errors are logged and otherwise ignored.
    """

    def __init__(
        self,
        cfn: Any,
        stack_name: str,
        resources_total: Optional[int] = None,
        poll_interval: float = DEFAULT_MONITOR_INTERVAL,
    ):
        self.cfn = cfn
        self.stack_name = stack_name
        self.resources_total = resources_total
        self.resources_done = 0
        self.poll_interval = poll_interval
        self.start_time = datetime.now(timezone.utc)

        self._last_event_id: Optional[str] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self) -> "StackActivityMonitor":
        """Begin polling in the background."""
        if self._thread is None:
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run, name=f"stack-activity-{self.stack_name}", daemon=True
            )
            self._thread.start()
        return self

    def stop(self) -> None:
        """Stop polling, wait for the thread, then print whatever is left."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join()
        self._thread = None
        self._tick()

    def __enter__(self) -> "StackActivityMonitor":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self._tick()
            self._stop_event.wait(self.poll_interval)

    def _tick(self) -> None:
        try:
            for event in self._read_new_events():
                self._print_event(event)
        except ClientError as e:
            if is_not_found_error(e):
                logger.debug(f"Stack {self.stack_name} is gone, no more events")
            else:
                logger.warning(f"Error reading events for {self.stack_name}: {e}")
        except BotoCoreError as e:
            logger.warning(f"Error reading events for {self.stack_name}: {e}")

    def _read_new_events(self) -> List[Dict[str, Any]]:
        """Fetch unseen events since the monitor started, oldest first."""
        new_events: List[Dict[str, Any]] = []
        paginator = self.cfn.get_paginator("describe_stack_events")

        # CloudFormation lists events newest first, so everything after the
        # last event already shown is older.
        for page in paginator.paginate(StackName=self.stack_name):
            done = False
            for event in page.get("StackEvents", []):
                if event["Timestamp"] < self.start_time or event["EventId"] == self._last_event_id:
                    done = True
                    break
                new_events.append(event)
            if done:
                break

        if new_events:
            self._last_event_id = new_events[0]["EventId"]
        new_events.reverse()
        return new_events

    def _progress(self) -> str:
        if self.resources_total is None:
            return ""
        done = min(self.resources_done, self.resources_total)
        width = len(str(self.resources_total))
        return f"{done:>{width}}/{self.resources_total} | "

    def _print_event(self, event: Dict[str, Any]) -> None:
        status = event.get("ResourceStatus", "")
        if status.endswith("_COMPLETE"):
            self.resources_done += 1

        timestamp = event["Timestamp"].astimezone().strftime("%H:%M:%S")
        physical_id = event.get("PhysicalResourceId")
        logical_id = event.get("LogicalResourceId", "")
        resource = f"{logical_id} ({physical_id})" if physical_id else logical_id
        line = (
            f"{self._progress()}{timestamp} | "
            f"{click.style(f'{status:<30}', fg=_status_color(status))} | "
            f"{event.get('ResourceType', ''):<36} | {resource}"
        )
        reason = event.get("ResourceStatusReason")
        if reason and "FAILED" in status:
            line += f" {click.style(reason, fg='red')}"
        click.echo(line)


@contextmanager
def monitor_stack_activity(
    cfn: Any,
    stack_name: str,
    quiet: bool = False,
    resources_total: Optional[int] = None,
    poll_interval: float = DEFAULT_MONITOR_INTERVAL,
) -> Iterator[Optional[StackActivityMonitor]]:
    """Run a monitor for the duration of the block; nothing when quiet."""
    if quiet:
        yield None
        return

    monitor = StackActivityMonitor(
        cfn, stack_name, resources_total=resources_total, poll_interval=poll_interval
    ).start()
    try:
        yield monitor
    finally:
        monitor.stop()
