"""Tests for progress events and reporters."""

import queue

from openstack_reporter.services.progress import (
    CallbackProgressReporter, NullProgressReporter, ProgressEvent, ProgressEventType,
    QueueProgressReporter
)


def test_to_dict_omits_empty_fields():
    event = ProgressEvent(ProgressEventType.RESOURCE_COMPLETE, "Collected 3 servers",
                          project='alpha', resource_type='servers', count=3)

    assert event.to_dict() == {
        'type': 'resource_complete',
        'message': "Collected 3 servers",
        'project': 'alpha',
        'resource_type': 'servers',
        'count': 3,
    }


def test_terminal_events():
    assert ProgressEvent(ProgressEventType.COMPLETE, "done").is_terminal
    assert ProgressEvent(ProgressEventType.ERROR, "failed").is_terminal
    assert not ProgressEvent(ProgressEventType.SUMMARY, "summary").is_terminal


def test_null_reporter_accepts_events():
    NullProgressReporter().send(ProgressEventType.START, "starting")


class TestQueueProgressReporter:

    def test_events_are_queued_in_order(self):
        reporter = QueueProgressReporter()

        reporter.send(ProgressEventType.START, "starting")
        reporter.send(ProgressEventType.PROJECT_START, "alpha", current_step=1, total_steps=2, project='alpha')

        first = reporter.queue.get_nowait()
        second = reporter.queue.get_nowait()
        assert first.type == ProgressEventType.START
        assert (second.project, second.current_step, second.total_steps) == ('alpha', 1, 2)

    def test_full_queue_drops_instead_of_blocking(self):
        reporter = QueueProgressReporter(queue.Queue(maxsize=1))

        reporter.send(ProgressEventType.PROGRESS, "one")
        reporter.send(ProgressEventType.PROGRESS, "two")

        assert reporter.queue.qsize() == 1
        assert reporter.dropped == 1

    def test_closed_reporter_drops(self):
        reporter = QueueProgressReporter()
        reporter.close()

        reporter.send(ProgressEventType.PROGRESS, "late")

        assert reporter.closed
        assert reporter.queue.empty()
        assert reporter.dropped == 1


def test_callback_errors_do_not_escape():
    def broken(event):
        raise RuntimeError("consumer gone")

    CallbackProgressReporter(broken).send(ProgressEventType.PROGRESS, "still fine")


def test_summary_is_copied_into_dict():
    summary = {'servers': 2}
    data = ProgressEvent(ProgressEventType.SUMMARY, "done", summary=summary).to_dict()

    assert data['summary'] == {'servers': 2}
    assert data['summary'] is not summary
