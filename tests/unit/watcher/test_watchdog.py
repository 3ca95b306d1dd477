import os
import threading

import mock
import pytest
from watchdog.events import DirModifiedEvent
from watchdog.events import FileCreatedEvent
from watchdog.events import FileDeletedEvent
from watchdog.events import FileModifiedEvent
from watchdog.events import FileMovedEvent
from watchdog.observers import Observer

from tests.unit.watcher.signals import signal_only, wake_on_alarm
from watchrun.watcher.eventbased import WatchDogEventAdapter, WatchdogBackend
from watchrun.watcher.shared import EventKind


@pytest.fixture
def observer():
    return mock.Mock(spec=Observer)


@pytest.fixture
def backend(observer):
    return WatchdogBackend(observer=observer)


@pytest.fixture
def watched(tmpdir):
    foo = tmpdir.join('foo.txt')
    foo.write('foo')
    fd = os.open(str(foo), os.O_RDONLY)
    yield foo, fd
    os.close(fd)


def real(path):
    return os.path.realpath(str(path))


def kinds(batch):
    return [e.kind for e in batch]


def test_directory_events_ignored():
    handler = mock.Mock()
    adapter = WatchDogEventAdapter(handler)
    adapter.on_any_event(DirModifiedEvent(src_path='./'))
    assert not handler.called


def test_file_events_respected():
    handler = mock.Mock()
    adapter = WatchDogEventAdapter(handler)
    event = FileModifiedEvent(src_path='./app.py')
    adapter.on_any_event(event)
    handler.assert_called_once_with(event)


class TestRegistration(object):
    def test_schedules_parent_directory_once(self, tmpdir, backend,
                                             observer):
        tmpdir.join('a').write('a')
        tmpdir.join('b').write('b')
        backend.register(3, str(tmpdir.join('a')))
        backend.register(4, str(tmpdir.join('b')))
        observer.start.assert_called_once_with()
        observer.schedule.assert_called_once_with(
            mock.ANY, real(tmpdir), recursive=False)

    def test_symlink_also_watches_resolved_directory(self, tmpdir, backend,
                                                     observer):
        real_dir = tmpdir.mkdir('real')
        real_dir.join('foo.txt').write('foo')
        link = tmpdir.join('link.txt')
        link.mksymlinkto(real_dir.join('foo.txt'))
        handle = backend.register(3, str(link))
        scheduled = [c[0][1] for c in observer.schedule.call_args_list]
        assert scheduled == [real(tmpdir), real(real_dir)]
        backend.unregister(handle)
        assert observer.unschedule.call_count == 2

    def test_failed_schedule_releases_earlier_watches(self, tmpdir, backend,
                                                      observer):
        real_dir = tmpdir.mkdir('real')
        real_dir.join('foo.txt').write('foo')
        link = tmpdir.join('link.txt')
        link.mksymlinkto(real_dir.join('foo.txt'))
        observer.schedule.side_effect = [
            mock.sentinel.watch, OSError(28, 'inotify watch limit')]
        with pytest.raises(OSError):
            backend.register(3, str(link))
        observer.unschedule.assert_called_once_with(mock.sentinel.watch)

    def test_unschedules_after_last_file(self, tmpdir, backend, observer):
        first = backend.register(3, str(tmpdir.join('a')))
        second = backend.register(4, str(tmpdir.join('b')))
        backend.unregister(first)
        assert not observer.unschedule.called
        backend.unregister(second)
        observer.unschedule.assert_called_once_with(
            observer.schedule.return_value)

    def test_unregister_unknown_handle_is_noop(self, backend, observer):
        backend.unregister(42)
        assert not observer.unschedule.called

    def test_schedule_errors_propagate(self, tmpdir, backend, observer):
        observer.schedule.side_effect = OSError(28, 'inotify watch limit')
        with pytest.raises(OSError):
            backend.register(3, str(tmpdir.join('a')))

    def test_close_stops_observer(self, tmpdir, backend, observer):
        backend.register(3, str(tmpdir.join('a')))
        backend.close()
        observer.stop.assert_called_once_with()
        observer.join.assert_called_once_with()

    def test_close_without_registrations(self, backend, observer):
        backend.close()
        assert not observer.stop.called


class TestClassification(object):
    def test_modify(self, watched, backend):
        foo, fd = watched
        handle = backend.register(fd, str(foo))
        backend._on_event(FileModifiedEvent(real(foo)))
        batch = backend.wait_for_batch()
        assert kinds(batch) == [EventKind.MODIFY]
        assert batch[0].handle == handle
        assert batch[0].path == str(foo)

    def test_events_for_other_files_ignored(self, tmpdir, watched, backend):
        foo, fd = watched
        backend.register(fd, str(foo))
        backend._on_event(FileModifiedEvent(real(tmpdir.join('other.txt'))))
        backend.wake()
        assert kinds(backend.wait_for_batch()) == [EventKind.WAKE]

    def test_delete(self, watched, backend):
        foo, fd = watched
        backend.register(fd, str(foo))
        foo.remove()
        backend._on_event(FileDeletedEvent(real(foo)))
        assert kinds(backend.wait_for_batch()) == [EventKind.DELETE]

    def test_rename_over_watched_file(self, tmpdir, watched, backend):
        foo, fd = watched
        backend.register(fd, str(foo))
        tmp = tmpdir.join('.foo.txt.swp')
        tmp.write('new')
        tmp.rename(foo)
        backend._on_event(FileMovedEvent(real(tmp), real(foo)))
        assert kinds(backend.wait_for_batch()) == [EventKind.RENAME]

    def test_modify_of_replacement_reports_rename(self, tmpdir, watched,
                                                  backend):
        foo, fd = watched
        backend.register(fd, str(foo))
        foo.remove()
        foo.write('recreated')
        backend._on_event(FileModifiedEvent(real(foo)))
        assert kinds(backend.wait_for_batch()) == [EventKind.RENAME]

    def test_created_for_current_object_ignored(self, watched, backend):
        foo, fd = watched
        backend.register(fd, str(foo))
        backend._on_event(FileCreatedEvent(real(foo)))
        backend.wake()
        assert kinds(backend.wait_for_batch()) == [EventKind.WAKE]

    def test_mask_filters_kinds(self, watched, backend):
        foo, fd = watched
        backend.register(fd, str(foo), mask=EventKind.DELETE)
        backend._on_event(FileModifiedEvent(real(foo)))
        backend.wake()
        assert kinds(backend.wait_for_batch()) == [EventKind.WAKE]

    def test_batch_drains_queued_events(self, watched, backend):
        foo, fd = watched
        backend.register(fd, str(foo))
        for _ in range(5):
            backend._on_event(FileModifiedEvent(real(foo)))
        assert len(backend.wait_for_batch()) == 5
        backend.wake()
        assert kinds(backend.wait_for_batch()) == [EventKind.WAKE]

    def test_modify_through_symlink(self, tmpdir, backend):
        real_dir = tmpdir.mkdir('real')
        foo = real_dir.join('foo.txt')
        foo.write('foo')
        link = tmpdir.join('link.txt')
        link.mksymlinkto(foo)
        fd = os.open(str(link), os.O_RDONLY)
        try:
            handle = backend.register(fd, str(link))
            backend._on_event(FileModifiedEvent(real(foo)))
            batch = backend.wait_for_batch()
        finally:
            os.close(fd)
        assert kinds(batch) == [EventKind.MODIFY]
        assert batch[0].handle == handle

    def test_link_beside_its_target_shares_one_watch(self, tmpdir, backend,
                                                     observer):
        foo = tmpdir.join('foo.txt')
        foo.write('foo')
        link = tmpdir.join('link.txt')
        link.mksymlinkto(foo)
        fd = os.open(str(link), os.O_RDONLY)
        try:
            backend.register(fd, str(link))
            backend._on_event(FileModifiedEvent(real(foo)))
            batch = backend.wait_for_batch()
        finally:
            os.close(fd)
        assert kinds(batch) == [EventKind.MODIFY]
        assert observer.schedule.call_count == 1

    @signal_only
    def test_wake_from_signal_handler(self, backend):
        with wake_on_alarm(backend):
            assert kinds(backend.wait_for_batch()) == [EventKind.WAKE]

    def test_wake_from_another_thread(self, backend):
        t = threading.Timer(0.1, backend.wake)
        t.daemon = True
        t.start()
        assert kinds(backend.wait_for_batch()) == [EventKind.WAKE]
