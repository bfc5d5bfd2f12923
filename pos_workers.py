# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Background workers for file access and snapshot batches.

Workers never touch the position store. They emit their results and the
UI thread applies them. Only one bulk operation runs at a time; others
wait in a BulkOperationQueue.
"""
from pathlib import Path

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from pos_codec import read_text, write_text
from utils_error_handler import PositionError
from utils_logger import LoggedOperation


class FileReadWorker(QThread):
    """Reads a positions file in the background"""
    progress = pyqtSignal(int)
    finished = pyqtSignal(str, str)  # text, path
    error = pyqtSignal(str)

    def __init__(self, path, logger=None):
        super().__init__()
        self.path = str(path)
        self.logger = logger

    def run(self):
        try:
            self.progress.emit(10)
            text = read_text(self.path, self.logger)
            self.progress.emit(100)
            self.finished.emit(text, self.path)
        except PositionError as e:
            self.error.emit(str(e))


class FileWriteWorker(QThread):
    """Writes a positions file in the background"""
    progress = pyqtSignal(int)
    finished = pyqtSignal(str, int)  # path, number of lines
    error = pyqtSignal(str)

    def __init__(self, path, text, logger=None):
        super().__init__()
        self.path = str(path)
        self.text = text
        self.logger = logger

    def run(self):
        try:
            self.progress.emit(10)
            write_text(self.path, self.text, self.logger)
            self.progress.emit(100)
            self.finished.emit(self.path, len(self.text.splitlines()))
        except PositionError as e:
            self.error.emit(str(e))


def run_snapshot_batch(records, capture, output_dir, should_abort=None, on_progress=None,
                       on_item=None):
    """
    Capture one snapshot per record.

    Args:
        records: list of (index, Record)
        capture: callable(record, path) writing one snapshot
        output_dir: directory for the PNG files
        should_abort: callable checked between items
        on_progress: callable(done, total)
        on_item: callable(path) after every saved snapshot

    Returns:
        (saved paths, failed messages, aborted flag)
    """
    output_dir = Path(output_dir)
    total = len(records)
    saved, failed = [], []
    for done, (index, record) in enumerate(records, start=1):
        if should_abort is not None and should_abort():
            return saved, failed, True
        path = output_dir / f"pos_{index + 1:03d}_{record.x}_{record.y}_{record.z}_{record.t}.png"
        try:
            capture(record, path)
        except (PositionError, OSError, ValueError) as e:
            failed.append(f"Row {index + 1}: {e}")
        else:
            saved.append(path)
            if on_item is not None:
                on_item(str(path))
        if on_progress is not None:
            on_progress(done, total)
    return saved, failed, False


class SnapshotWorker(QThread):
    """Captures a snapshot of every listed position"""
    progress = pyqtSignal(int, int)  # done, total
    item_saved = pyqtSignal(str)
    finished = pyqtSignal(int, list, bool)  # saved count, failures, aborted
    error = pyqtSignal(str)

    def __init__(self, records, capture, output_dir, logger=None):
        super().__init__()
        self.records = list(records)
        self.capture = capture
        self.output_dir = output_dir
        self.logger = logger
        self._abort = False

    def abort(self):
        """Stop after the snapshot currently being captured"""
        self._abort = True

    @property
    def aborted(self):
        return self._abort

    def run(self):
        try:
            Path(self.output_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.error.emit(f"Cannot create {self.output_dir}: {e}")
            return

        def _batch():
            return run_snapshot_batch(
                self.records, self.capture, self.output_dir,
                should_abort=lambda: self._abort,
                on_progress=self.progress.emit,
                on_item=self.item_saved.emit
            )

        if self.logger:
            with LoggedOperation(self.logger, "snapshot_batch",
                                 count=len(self.records), output_dir=self.output_dir) as op:
                saved, failed, aborted = _batch()
                op.results = {'saved': len(saved), 'failed': len(failed), 'aborted': aborted}
        else:
            saved, failed, aborted = _batch()
        self.finished.emit(len(saved), failed, aborted)


class BulkOperationQueue(QObject):
    """Runs bulk workers one at a time, queueing the rest"""
    busy_changed = pyqtSignal(bool)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.current = None
        self.pending = []

    @property
    def busy(self):
        return self.current is not None

    def submit(self, worker):
        """Start the worker now, or when the running one is done"""
        if self.current is None:
            self._start(worker)
            return True
        self.pending.append(worker)
        return False

    def _start(self, worker):
        self.current = worker
        worker.finished.connect(self._on_done)
        worker.error.connect(self._on_done)
        self.busy_changed.emit(True)
        worker.start()

    def _on_done(self, *args):
        # finished/error are emitted from inside run(); the thread must be
        # down before the last reference to the worker goes away
        worker, self.current = self.current, None
        if worker is not None:
            worker.wait()
        if self.pending:
            self._start(self.pending.pop(0))
        else:
            self.busy_changed.emit(False)

    def abort_current(self):
        if self.current is not None and hasattr(self.current, 'abort'):
            self.current.abort()
