"""
Progress events emitted while converging, and the sinks that receive them.
"""
import threading
from dataclasses import dataclass
from enum import Enum

import click


class EventStatus(str, Enum):
    WORKING = "working"
    DONE = "done"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Event:
    """
    One step in the life of a container, keyed by "Container <name>".
    """
    id: str
    status: EventStatus
    text: str


def creating_event(name: str) -> Event:
    return Event(name, EventStatus.WORKING, "Creating")


def created_event(name: str) -> Event:
    return Event(name, EventStatus.DONE, "Created")


def starting_event(name: str) -> Event:
    return Event(name, EventStatus.WORKING, "Starting")


def started_event(name: str) -> Event:
    return Event(name, EventStatus.DONE, "Started")


def stopping_event(name: str) -> Event:
    return Event(name, EventStatus.WORKING, "Stopping")


def stopped_event(name: str) -> Event:
    return Event(name, EventStatus.DONE, "Stopped")


def removing_event(name: str) -> Event:
    return Event(name, EventStatus.WORKING, "Removing")


def removed_event(name: str) -> Event:
    return Event(name, EventStatus.DONE, "Removed")


def restarting_event(name: str) -> Event:
    return Event(name, EventStatus.WORKING, "Restarting")


def restarted_event(name: str) -> Event:
    return Event(name, EventStatus.DONE, "Restarted")


def recreating_event(name: str) -> Event:
    return Event(name, EventStatus.WORKING, "Recreate")


def recreated_event(name: str) -> Event:
    return Event(name, EventStatus.DONE, "Recreated")


def running_event(name: str) -> Event:
    return Event(name, EventStatus.DONE, "Running")


def skipped_event(name: str, reason: str) -> Event:
    return Event(name, EventStatus.WARNING, reason)


class ProgressWriter:
    """
    Receives events. Called from worker threads, implementations must be thread safe.
    """

    def event(self, event: Event) -> None:
        raise NotImplementedError


class NoopProgressWriter(ProgressWriter):
    def event(self, event: Event) -> None:
        pass


class ConsoleProgressWriter(ProgressWriter):
    """
    Prints one line per event.
    """

    def __init__(self, err: bool = False):
        self.err = err
        self._lock = threading.Lock()

    def event(self, event: Event) -> None:
        line = f"{event.id:40} {event.text}"
        if event.status == EventStatus.WARNING:
            line = click.style(line, fg="yellow")
        elif event.status == EventStatus.ERROR:
            line = click.style(line, fg="red")
        with self._lock:
            click.echo(line, err=self.err)
