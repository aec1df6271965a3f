#!/usr/bin/env python3
"""
Unit tests for VMX Monitor core modules.
Tests cover: sidecar parsing, directory scanning, progress maths, handle store,
tracker state machine, config, formatting.
"""

import sys
import os
import shutil
import tempfile
from pathlib import Path
from unittest import mock

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

from vmx_monitor.core.constants import (
    ErrorCode, TrackerState, DEFAULT_API_URL, API_URL_ENV,
)
from vmx_monitor.core.config import AppConfig, is_valid_api_url
from vmx_monitor.core.directory_access import (
    DirectoryCapability, LocalDirectory, capability_from_record,
)
from vmx_monitor.core.directory_scan import base_name, classify, scan_directory
from vmx_monitor.core.error_codes import MonitorError, category_for, is_remote_error
from vmx_monitor.core.formatting import (
    format_file_size, format_iso_date, encoder_label, job_type_label, short_id,
    progress_status_text,
)
from vmx_monitor.core.handle_store import HandleStore, KeyValueBackend, SqliteHandleBackend
from vmx_monitor.core.models import (
    DirectoryEntry, MediaFileEntry, ProgressSnapshot, TargetDescriptor, TrackedFile,
)
from vmx_monitor.core.progress_parse import (
    parse_progress_text, parse_target_text, read_progress_file,
)
from vmx_monitor.core.tracker import ProgressTracker, progress_percent


# ── Test doubles ──────────────────────────────────────────────────────

class MemoryDirectory(DirectoryCapability):
    """In-memory capability: {name: (bytes, last_modified_ms)}."""

    kind = "memory"

    def __init__(self, name="vmx_file", files=None):
        self._name = name
        self.files = dict(files or {})
        self.revoked = False
        self.unreadable = set()
        self.enumerate_calls = 0
        self.on_enumerate = None

    @property
    def name(self):
        return self._name

    def add(self, filename, text="", mtime=0):
        self.files[filename] = (text.encode("utf-8"), mtime)

    def enumerate(self):
        self.enumerate_calls += 1
        if self.on_enumerate:
            self.on_enumerate()
        if self.revoked:
            raise PermissionError("access revoked")
        return [DirectoryEntry(name=n, size=len(data), last_modified=mtime)
                for n, (data, mtime) in self.files.items()]

    def open_entry(self, name):
        if name in self.unreadable:
            raise PermissionError(f"cannot read {name}")
        return self.files[name][0]

    def to_record(self):
        return {"kind": self.kind, "name": self._name}


class MemoryBackend(KeyValueBackend):
    def __init__(self):
        self.data = {}
        self.fail_saves = False

    def save(self, key, record):
        if self.fail_saves:
            raise OSError("disk full")
        self.data[key] = dict(record)

    def load(self, key):
        return self.data.get(key)

    def clear(self, key):
        self.data.pop(key, None)


PROGRESS_TWO_BLOCKS = """frame=120
fps=29.97
bitrate=1500.2kbits/s
total_size=1048576
out_time_ms=4000000
out_time=00:00:04.000000
speed=1.2x
progress=continue
frame=240
fps=30.01
bitrate=1510.0kbits/s
total_size=2097152
out_time_ms=8000000
out_time=00:00:08.000000
speed=1.25x
progress=continue
"""

TARGET_FULL = """queue_id=3f2a9c1e-0000-4000-8000-1234567890ab
type=black-screen
output_file=/home/user/Downloads/vmx_file/song.mp4
total_duration=120.5
total_frames=3615
width=1920
height=1080
fps=30
encoder=nvenc
preset=p4
fade_effect=none
fade_duration=2.5
created_at=2026-10-18T10:00:00Z
"""


class TestProgressParsing(unittest.TestCase):
    """Test progress log block parsing."""

    def test_returns_last_block(self):
        snap = parse_progress_text(PROGRESS_TWO_BLOCKS)
        self.assertEqual(snap.frame, 240)
        self.assertAlmostEqual(snap.fps, 30.01)
        self.assertEqual(snap.bitrate, "1510.0kbits/s")
        self.assertEqual(snap.out_time_us, 8000000)
        self.assertEqual(snap.out_time, "00:00:08.000000")
        self.assertEqual(snap.speed, "1.25x")
        self.assertEqual(snap.total_size, 2097152)
        self.assertEqual(snap.progress, "continue")

    def test_partial_last_block_not_merged(self):
        text = PROGRESS_TWO_BLOCKS + "frame=300\nfps=31.5\n"
        snap = parse_progress_text(text)
        self.assertEqual(snap.frame, 300)
        self.assertAlmostEqual(snap.fps, 31.5)
        # Fields the partial block hasn't written yet keep defaults
        self.assertEqual(snap.bitrate, "")
        self.assertEqual(snap.out_time_us, 0)
        self.assertEqual(snap.progress, "continue")

    def test_never_first_of_many(self):
        blocks = "".join(f"frame={i}\nout_time_ms={i * 1000}\nprogress=continue\n"
                         for i in range(1, 6))
        snap = parse_progress_text(blocks)
        self.assertEqual(snap.frame, 5)
        self.assertEqual(snap.out_time_us, 5000)

    def test_no_frame_line(self):
        self.assertIsNone(parse_progress_text("fps=30\nprogress=end\nout_time_ms=100\n"))
        self.assertIsNone(parse_progress_text(""))
        self.assertIsNone(parse_progress_text("\n\n   \n"))

    def test_keys_before_first_frame_ignored(self):
        snap = parse_progress_text("fps=99\nframe=10\n")
        self.assertEqual(snap.frame, 10)
        self.assertEqual(snap.fps, 0)

    def test_end_state(self):
        snap = parse_progress_text(PROGRESS_TWO_BLOCKS.replace(
            "speed=1.25x\nprogress=continue", "speed=1.25x\nprogress=end"))
        self.assertTrue(snap.is_finished)

    def test_malformed_numbers_default_to_zero(self):
        snap = parse_progress_text("frame=abc\nfps=N/A\ntotal_size=N/A\nout_time_ms=-\n")
        self.assertEqual(snap.frame, 0)
        self.assertEqual(snap.fps, 0)
        self.assertEqual(snap.total_size, 0)
        self.assertEqual(snap.out_time_us, 0)

    def test_leading_numeric_prefix(self):
        snap = parse_progress_text("frame=42 \nfps=12.5x\n")
        self.assertEqual(snap.frame, 42)
        self.assertAlmostEqual(snap.fps, 12.5)

    def test_lines_without_single_equals_ignored(self):
        snap = parse_progress_text("frame=1\nnoise line\nbitrate=a=b\nspeed= 2x \n")
        self.assertEqual(snap.bitrate, "")
        self.assertEqual(snap.speed, "2x")

    def test_stream_quality_optional(self):
        self.assertIsNone(parse_progress_text("frame=1\n").stream_quality)
        self.assertIsNone(parse_progress_text("frame=1\nstream_0_0_q=0.0\n").stream_quality)
        self.assertAlmostEqual(
            parse_progress_text("frame=1\nstream_0_0_q=28.0\n").stream_quality, 28.0)

    def test_crlf_line_endings(self):
        snap = parse_progress_text("frame=7\r\nspeed=1x\r\nprogress=end\r\n")
        self.assertEqual(snap.frame, 7)
        self.assertEqual(snap.speed, "1x")
        self.assertTrue(snap.is_finished)


class TestTargetParsing(unittest.TestCase):
    """Test target descriptor parsing."""

    def test_full_descriptor(self):
        target = parse_target_text(TARGET_FULL)
        self.assertEqual(target.queue_id, "3f2a9c1e-0000-4000-8000-1234567890ab")
        self.assertEqual(target.job_type, "black-screen")
        self.assertAlmostEqual(target.total_duration, 120.5)
        self.assertEqual(target.total_frames, 3615)
        self.assertEqual((target.width, target.height, target.fps), (1920, 1080, 30))
        self.assertEqual(target.encoder, "nvenc")
        self.assertEqual(target.preset, "p4")
        self.assertIsNone(target.fade_effect)
        self.assertAlmostEqual(target.fade_duration, 2.5)
        self.assertIsNone(target.fade_offset)
        self.assertEqual(target.created_at, "2026-10-18T10:00:00Z")

    def test_missing_total_frames(self):
        text = "\n".join(l for l in TARGET_FULL.splitlines()
                         if not l.startswith("total_frames"))
        self.assertIsNone(parse_target_text(text))

    def test_missing_queue_id(self):
        text = "\n".join(l for l in TARGET_FULL.splitlines()
                         if not l.startswith("queue_id"))
        self.assertIsNone(parse_target_text(text))

    def test_zero_duration(self):
        self.assertIsNone(parse_target_text("queue_id=a\ntotal_duration=0\ntotal_frames=10\n"))

    def test_minimal_valid(self):
        target = parse_target_text("queue_id=a\ntotal_duration=10\ntotal_frames=300\n")
        self.assertIsNotNone(target)
        self.assertIsNone(target.width)
        self.assertEqual(target.encoder, "")

    def test_fade_effect_kept(self):
        target = parse_target_text(TARGET_FULL.replace("fade_effect=none", "fade_effect=fadeblack"))
        self.assertEqual(target.fade_effect, "fadeblack")


class TestNaming(unittest.TestCase):
    """Test sidecar/media classification and base names."""

    def test_classify(self):
        self.assertEqual(classify("song.mp4"), "media")
        self.assertEqual(classify("song.MKV"), "media")
        self.assertEqual(classify("song.avi"), "media")
        self.assertEqual(classify("song_progress.txt"), "progress")
        self.assertEqual(classify("song_PROGRESS.TXT"), "progress")
        self.assertEqual(classify("song_progress_target.txt"), "target")
        self.assertIsNone(classify("notes.txt"))
        self.assertIsNone(classify("song.mov"))

    def test_base_name(self):
        self.assertEqual(base_name("song.mp4"), "song")
        self.assertEqual(base_name("song_progress.txt"), "song")
        self.assertEqual(base_name("song_progress_target.txt"), "song")
        self.assertEqual(base_name("Song.MP4"), "Song")
        self.assertEqual(base_name("my.song.v2.mkv"), "my.song.v2")


class TestDirectoryScan(unittest.TestCase):
    """Test two-pass scanning and association."""

    def test_association_is_name_based(self):
        d = MemoryDirectory()
        d.add("song.mp4", "x" * 10, mtime=1000)
        d.add("song2.mp4", "x" * 20, mtime=2000)
        d.add("song_progress.txt", PROGRESS_TWO_BLOCKS)
        d.add("song_progress_target.txt", TARGET_FULL)

        files = {t.name: t for t in scan_directory(d)}
        self.assertEqual(set(files), {"song.mp4", "song2.mp4"})
        self.assertEqual(files["song.mp4"].snapshot.frame, 240)
        self.assertEqual(files["song.mp4"].target.total_frames, 3615)
        self.assertIsNone(files["song2.mp4"].snapshot)
        self.assertIsNone(files["song2.mp4"].target)

    def test_sidecars_shared_by_extension_variants(self):
        d = MemoryDirectory()
        d.add("song.mkv", mtime=1)
        d.add("song_progress.txt", "frame=5\n")
        files = scan_directory(d)
        self.assertEqual(files[0].snapshot.frame, 5)

    def test_sorted_newest_first(self):
        d = MemoryDirectory()
        d.add("a.mp4", mtime=1000)
        d.add("c.avi", mtime=3000)
        d.add("b.mkv", mtime=2000)
        self.assertEqual([t.name for t in scan_directory(d)], ["c.avi", "b.mkv", "a.mp4"])

    def test_only_media_listed(self):
        d = MemoryDirectory()
        d.add("orphan_progress.txt", "frame=1\n")
        d.add("readme.md", "hi")
        self.assertEqual(scan_directory(d), [])

    def test_directories_skipped(self):
        d = MemoryDirectory()
        d.enumerate = lambda: [DirectoryEntry(name="clips.mp4", is_file=False)]
        self.assertEqual(scan_directory(d), [])

    def test_unreadable_sidecar_is_no_data(self):
        d = MemoryDirectory()
        d.add("song.mp4", mtime=1)
        d.add("song_progress.txt", "frame=5\n")
        d.unreadable.add("song_progress.txt")
        files = scan_directory(d)
        self.assertEqual(len(files), 1)
        self.assertIsNone(files[0].snapshot)

    def test_broken_target_is_no_data(self):
        d = MemoryDirectory()
        d.add("song.mp4", mtime=1)
        d.add("song_progress_target.txt", "garbage\n\x00\x01")
        self.assertIsNone(scan_directory(d)[0].target)

    def test_enumeration_failure(self):
        d = MemoryDirectory()
        d.revoked = True
        with self.assertRaises(MonitorError) as ctx:
            scan_directory(d)
        self.assertEqual(ctx.exception.code, ErrorCode.SCAN_FAILED)

    def test_read_progress_file_missing_entry(self):
        d = MemoryDirectory()
        self.assertIsNone(read_progress_file(d, "gone_progress.txt"))


def _tracked(snapshot=None, target=None):
    return TrackedFile(entry=MediaFileEntry(name="song.mp4", size=0, last_modified=0),
                       snapshot=snapshot, target=target)


def _target(duration=120.0):
    return TargetDescriptor(queue_id="q", total_duration=duration, total_frames=3600)


class TestProgressPercent(unittest.TestCase):
    """Test percentage derivation."""

    def test_no_data(self):
        self.assertIsNone(progress_percent(_tracked()))

    def test_end_is_always_100(self):
        snap = ProgressSnapshot(progress="end", out_time_us=0)
        self.assertEqual(progress_percent(_tracked(snap, _target())), 100)
        self.assertEqual(progress_percent(_tracked(snap)), 100)

    def test_half_way(self):
        snap = ProgressSnapshot(out_time_us=60_000_000)
        self.assertEqual(progress_percent(_tracked(snap, _target(120))), 50)

    def test_zero_out_time(self):
        snap = ProgressSnapshot(out_time_us=0)
        self.assertEqual(progress_percent(_tracked(snap, _target(120))), 0)

    def test_negative_out_time(self):
        snap = ProgressSnapshot(out_time_us=-5_000_000)
        self.assertEqual(progress_percent(_tracked(snap, _target(120))), 0)

    def test_clamped_to_100(self):
        snap = ProgressSnapshot(out_time_us=500_000_000)
        self.assertEqual(progress_percent(_tracked(snap, _target(120))), 100)

    def test_rounds_half_up(self):
        # 1.5% of 100s
        snap = ProgressSnapshot(out_time_us=1_500_000)
        self.assertEqual(progress_percent(_tracked(snap, _target(100))), 2)

    def test_target_only(self):
        self.assertEqual(progress_percent(_tracked(target=_target())), 0)

    def test_snapshot_only(self):
        snap = ProgressSnapshot(out_time_us=60_000_000)
        self.assertEqual(progress_percent(_tracked(snap)), 0)


class TestHandleStore(unittest.TestCase):
    """Test SQLite-backed capability persistence."""

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.watched = self.tmpdir / "vmx_file"
        self.watched.mkdir()
        self.backend = SqliteHandleBackend(self.tmpdir / "handles.db")
        self.store = HandleStore(self.backend)

    def tearDown(self):
        self.backend.close()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_load_empty(self):
        self.assertIsNone(self.store.load())

    def test_save_and_load(self):
        self.store.save(LocalDirectory(self.watched))
        restored = self.store.load()
        self.assertIsInstance(restored, LocalDirectory)
        self.assertEqual(restored.path, self.watched)
        self.assertEqual(restored.name, "vmx_file")

    def test_survives_reopen(self):
        self.store.save(LocalDirectory(self.watched))
        self.backend.close()
        self.backend = SqliteHandleBackend(self.tmpdir / "handles.db")
        self.assertIsNotNone(HandleStore(self.backend).load())

    def test_save_overwrites(self):
        other = self.tmpdir / "other"
        other.mkdir()
        self.store.save(LocalDirectory(self.watched))
        self.store.save(LocalDirectory(other))
        self.assertEqual(self.store.load().path, other)

    def test_clear_is_idempotent(self):
        self.store.save(LocalDirectory(self.watched))
        self.store.clear()
        self.store.clear()
        self.assertIsNone(self.store.load())

    def test_load_without_schema(self):
        self.backend.conn.execute("DROP TABLE handles")
        self.assertIsNone(self.store.load())

    def test_unknown_kind(self):
        self.backend.save("directory_handle", {"kind": "browser-handle", "name": "x"})
        self.assertIsNone(self.store.load())

    def test_verify(self):
        cap = LocalDirectory(self.watched)
        self.assertTrue(HandleStore.verify(cap))
        shutil.rmtree(self.watched)
        self.assertFalse(HandleStore.verify(cap))

    def test_save_failure_swallowed(self):
        backend = MemoryBackend()
        backend.fail_saves = True
        HandleStore(backend).save(LocalDirectory(self.watched))
        self.assertEqual(backend.data, {})

    def test_load_failure_is_absent(self):
        backend = MemoryBackend()
        backend.load = mock.Mock(side_effect=OSError("locked"))
        self.assertIsNone(HandleStore(backend).load())

    def test_capability_from_broken_record(self):
        self.assertIsNone(capability_from_record({"kind": "local"}))
        self.assertIsNone(capability_from_record([1, 2]))
        self.assertIsNone(capability_from_record("local"))

    def test_non_object_record_is_absent(self):
        self.backend.conn.execute(
            "INSERT INTO handles (key, record) VALUES (?, ?)", ("directory_handle", "[1, 2]"))
        self.backend.conn.commit()
        self.assertIsNone(self.store.load())

    def test_unparseable_record_is_absent(self):
        self.backend.conn.execute(
            "INSERT INTO handles (key, record) VALUES (?, ?)", ("directory_handle", "{oops"))
        self.backend.conn.commit()
        self.assertIsNone(self.store.load())

    def test_damaged_file_is_recreated(self):
        db = self.tmpdir / "damaged.db"
        db.write_bytes(b"this is not a sqlite database, just some bytes" * 20)
        backend = SqliteHandleBackend(db)
        try:
            self.assertFalse(backend.in_memory)
            store = HandleStore(backend)
            self.assertIsNone(store.load())
            store.save(LocalDirectory(self.watched))
            self.assertEqual(store.load().path, self.watched)
        finally:
            backend.close()
        moved = [p.name for p in self.tmpdir.iterdir() if p.name.startswith("damaged.db.corrupt-")]
        self.assertEqual(len(moved), 1)

    def test_unusable_location_falls_back_to_memory(self):
        blocker = self.tmpdir / "not_a_dir"
        blocker.write_text("x")
        backend = SqliteHandleBackend(blocker / "handles.db")
        try:
            self.assertTrue(backend.in_memory)
            store = HandleStore(backend)
            store.save(LocalDirectory(self.watched))
            self.assertEqual(store.load().path, self.watched)
        finally:
            backend.close()


class TestLocalDirectory(unittest.TestCase):
    """Test the filesystem-backed capability."""

    def test_enumerate_and_read(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "song.mp4").write_bytes(b"\x00" * 64)
            (root / "song_progress.txt").write_text("frame=1\n")
            (root / "sub").mkdir()
            os.utime(root / "song.mp4", (1_700_000_000, 1_700_000_000))

            cap = LocalDirectory(root)
            entries = {e.name: e for e in cap.enumerate()}
            self.assertEqual(entries["song.mp4"].size, 64)
            self.assertEqual(entries["song.mp4"].last_modified, 1_700_000_000_000)
            self.assertEqual(entries["song.mp4"].mime_type, "video/mp4")
            self.assertFalse(entries["sub"].is_file)
            self.assertEqual(cap.open_entry("song_progress.txt"), b"frame=1\n")

    def test_open_entry_rejects_paths(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(FileNotFoundError):
                LocalDirectory(tmpdir).open_entry("../etc/passwd")


class TestProgressTracker(unittest.TestCase):
    """Test the tracker state machine."""

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.config = AppConfig(self.tmpdir / "config.json")
        self.backend = MemoryBackend()
        self.store = HandleStore(self.backend)
        self.directory = MemoryDirectory()
        self.directory.add("old.mp4", mtime=1000)
        self.directory.add("new.mp4", mtime=3000)
        self.directory.add("new_progress.txt", "frame=9\nprogress=end\n")

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _tracker(self, picker=None):
        return ProgressTracker(self.store, self.config, picker=picker)

    def test_initial_state(self):
        self.assertEqual(self._tracker().state, TrackerState.UNINITIALIZED)

    def test_restore_nothing_stored(self):
        self.config.last_directory_name = "vmx_file"
        tracker = self._tracker()
        tracker.restore()
        self.assertEqual(tracker.state, TrackerState.IDLE)
        self.assertEqual(tracker.directory_name, "vmx_file")
        self.assertIsNone(tracker.capability)

    def test_restore_valid(self):
        watched = self.tmpdir / "vmx_file"
        watched.mkdir()
        (watched / "clip.mp4").write_bytes(b"1")
        self.store.save(LocalDirectory(watched))

        tracker = self._tracker()
        tracker.restore()
        self.assertEqual(tracker.state, TrackerState.ACTIVE)
        self.assertEqual([t.name for t in tracker.files], ["clip.mp4"])

    def test_restore_revoked_clears_record(self):
        watched = self.tmpdir / "vmx_file"
        watched.mkdir()
        self.store.save(LocalDirectory(watched))
        self.config.last_directory_name = "vmx_file"
        shutil.rmtree(watched)

        tracker = self._tracker()
        tracker.restore()
        self.assertEqual(tracker.state, TrackerState.IDLE)
        self.assertIsNone(tracker.capability)
        self.assertEqual(self.backend.data, {})
        self.assertEqual(tracker.directory_name, "vmx_file")
        self.assertEqual(tracker.files, [])
        self.assertIn("choose the directory again", tracker.error)
        self.assertTrue(progress_status_text(tracker).startswith("Error: Access to vmx_file"))

    def test_grant_unsupported(self):
        tracker = self._tracker(picker=None)
        with self.assertRaises(MonitorError) as ctx:
            tracker.grant_access()
        self.assertEqual(ctx.exception.code, ErrorCode.FS_UNSUPPORTED)
        self.assertEqual(tracker.state, TrackerState.UNINITIALIZED)

    def test_grant_cancelled(self):
        tracker = self._tracker(picker=lambda: None)
        self.assertFalse(tracker.grant_access())
        self.assertEqual(tracker.state, TrackerState.UNINITIALIZED)
        self.assertEqual(tracker.error, "")
        self.assertEqual(self.backend.data, {})

    def test_grant_success(self):
        tracker = self._tracker(picker=lambda: self.directory)
        self.assertTrue(tracker.grant_access())
        self.assertEqual(tracker.state, TrackerState.ACTIVE)
        self.assertEqual([t.name for t in tracker.files], ["new.mp4", "old.mp4"])
        self.assertEqual(tracker.files[0].snapshot.frame, 9)
        self.assertEqual(self.backend.data["directory_handle"]["name"], "vmx_file")
        self.assertEqual(self.config.last_directory_name, "vmx_file")

    def test_grant_survives_storage_failure(self):
        self.backend.fail_saves = True
        tracker = self._tracker(picker=lambda: self.directory)
        self.assertTrue(tracker.grant_access())
        self.assertEqual(tracker.state, TrackerState.ACTIVE)

    def test_refresh_requires_directory(self):
        tracker = self._tracker()
        with self.assertRaises(MonitorError) as ctx:
            tracker.refresh()
        self.assertEqual(ctx.exception.code, ErrorCode.NO_DIRECTORY)

    def test_refresh_replaces_results(self):
        tracker = self._tracker(picker=lambda: self.directory)
        tracker.grant_access()
        self.directory.add("newest.avi", mtime=9000)
        del self.directory.files["old.mp4"]
        self.assertTrue(tracker.refresh())
        self.assertEqual([t.name for t in tracker.files], ["newest.avi", "new.mp4"])

    def test_refresh_failure_keeps_results_and_grant(self):
        tracker = self._tracker(picker=lambda: self.directory)
        tracker.grant_access()
        self.directory.revoked = True
        with self.assertRaises(MonitorError) as ctx:
            tracker.refresh()
        self.assertEqual(ctx.exception.code, ErrorCode.SCAN_FAILED)
        self.assertEqual(len(tracker.files), 2)
        self.assertEqual(tracker.state, TrackerState.ACTIVE)
        self.assertTrue(tracker.error)
        self.assertIn("directory_handle", self.backend.data)

    def test_status_line_keeps_error_prefix(self):
        tracker = self._tracker(picker=lambda: self.directory)
        self.assertEqual(progress_status_text(tracker),
                         'Click "Choose Directory" to select the encoder output folder.')
        tracker.grant_access()
        self.assertEqual(progress_status_text(tracker), "2 file(s)")
        self.directory.revoked = True
        with self.assertRaises(MonitorError):
            tracker.refresh()
        self.assertEqual(progress_status_text(tracker), f"Error: {tracker.error}")
        self.assertIn("Failed to read files from vmx_file", tracker.error)
        self.directory.revoked = False
        tracker.refresh()
        self.assertEqual(progress_status_text(tracker), "2 file(s)")

    def test_status_line_while_scanning(self):
        tracker = self._tracker(picker=lambda: self.directory)
        lines = []
        tracker.on_change = lambda: lines.append(progress_status_text(tracker))
        tracker.grant_access()
        self.assertIn("Loading files...", lines)

    def test_overlapping_refresh_ignored(self):
        tracker = self._tracker(picker=lambda: self.directory)
        tracker.grant_access()
        nested = []
        self.directory.on_enumerate = lambda: nested.append(tracker.refresh())
        self.assertTrue(tracker.refresh())
        self.assertEqual(nested, [False])

    def test_forget(self):
        tracker = self._tracker(picker=lambda: self.directory)
        tracker.grant_access()
        tracker.forget()
        self.assertEqual(tracker.state, TrackerState.UNINITIALIZED)
        self.assertEqual(tracker.files, [])
        self.assertEqual(self.backend.data, {})
        self.assertEqual(self.config.last_directory_name, "")

    def test_on_change_sees_scanning(self):
        tracker = self._tracker(picker=lambda: self.directory)
        states = []
        tracker.on_change = lambda: states.append(tracker.state)
        tracker.grant_access()
        self.assertIn(TrackerState.SCANNING, states)
        self.assertEqual(states[-1], TrackerState.ACTIVE)

    def test_export_file(self):
        tracker = self._tracker(picker=lambda: self.directory)
        tracker.grant_access()
        self.directory.add("new.mp4", "video-bytes", mtime=3000)
        dest = self.tmpdir / "exports"
        first = tracker.export_file("new.mp4", dest)
        second = tracker.export_file("new.mp4", dest)
        self.assertEqual(first.read_text(), "video-bytes")
        self.assertEqual(second.name, "new_001.mp4")

    def test_export_failure(self):
        tracker = self._tracker(picker=lambda: self.directory)
        tracker.grant_access()
        self.directory.unreadable.add("new.mp4")
        with self.assertRaises(MonitorError) as ctx:
            tracker.export_file("new.mp4", self.tmpdir / "exports")
        self.assertEqual(ctx.exception.code, ErrorCode.EXPORT_FAILED)


class TestConfig(unittest.TestCase):
    """Test JSON config defaults and validation."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "config.json"

    def tearDown(self):
        self.tmpdir.cleanup()

    @mock.patch.dict(os.environ, {}, clear=False)
    def test_defaults(self):
        os.environ.pop(API_URL_ENV, None)
        config = AppConfig(self.path)
        self.assertEqual(config.api_url, DEFAULT_API_URL)
        self.assertEqual(config.request_timeout_sec, 10)
        self.assertEqual(config.last_directory_name, "")

    def test_persists(self):
        config = AppConfig(self.path)
        config.set("api_url", "http://encoder.local:9000/")
        self.assertEqual(AppConfig(self.path).api_url, "http://encoder.local:9000")

    def test_invalid_api_url(self):
        config = AppConfig(self.path)
        config.set("api_url", "ftp://nope")
        self.assertEqual(config.api_url, DEFAULT_API_URL)

    def test_timeout_clamped(self):
        config = AppConfig(self.path)
        config.set("request_timeout_sec", "0")
        self.assertEqual(config.request_timeout_sec, 1)
        config.set("request_timeout_sec", "abc")
        self.assertEqual(config.request_timeout_sec, 10)

    def test_api_url_validity(self):
        self.assertTrue(is_valid_api_url("http://localhost:8080/"))
        self.assertTrue(is_valid_api_url(" https://queue.example "))
        self.assertFalse(is_valid_api_url("localhost:8080"))
        self.assertFalse(is_valid_api_url("http://"))
        self.assertFalse(is_valid_api_url(""))

    def test_polling_keys_not_configurable(self):
        self.path.write_text('{"poll_interval_sec": 0.5, "error_clear_sec": 1, "export_root": "/tmp/x"}')
        config = AppConfig(self.path)
        self.assertIsNone(config.get("poll_interval_sec"))
        self.assertIsNone(config.get("error_clear_sec"))
        self.assertEqual(config.export_root, "/tmp/x")

    def test_as_dict_is_a_copy(self):
        config = AppConfig(self.path)
        snapshot = config.as_dict()
        snapshot["api_url"] = "http://changed"
        self.assertNotEqual(config.api_url, "http://changed")
        self.assertIn("export_root", snapshot)

    @mock.patch.dict(os.environ, {API_URL_ENV: "http://queue.example:8080"})
    def test_env_override(self):
        self.assertEqual(AppConfig(self.path).api_url, "http://queue.example:8080")

    def test_broken_file(self):
        self.path.write_text("{not json")
        self.assertEqual(AppConfig(self.path).request_timeout_sec, 10)


class TestErrorsAndFormatting(unittest.TestCase):
    """Test error categories and display helpers."""

    def test_categories(self):
        self.assertEqual(category_for(ErrorCode.FS_UNSUPPORTED), "capability")
        self.assertEqual(category_for(ErrorCode.SCAN_FAILED), "enumeration")
        self.assertEqual(MonitorError(ErrorCode.QUEUE_CANCEL, "x").category, "remote")
        self.assertTrue(is_remote_error(ErrorCode.QUEUE_FETCH))
        self.assertFalse(is_remote_error(ErrorCode.NO_DIRECTORY))

    def test_file_size(self):
        self.assertEqual(format_file_size(0), "0 Bytes")
        self.assertEqual(format_file_size(512), "512 Bytes")
        self.assertEqual(format_file_size(1024), "1 KB")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(5 * 1024 ** 3), "5 GB")

    def test_iso_date_fallback(self):
        self.assertEqual(format_iso_date("not a date"), "not a date")
        self.assertEqual(format_iso_date(""), "")
        self.assertRegex(format_iso_date("2026-10-18T10:00:00Z"),
                         r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")

    def test_labels(self):
        self.assertEqual(encoder_label("nvenc"), "NVIDIA GPU (NVENC)")
        self.assertEqual(encoder_label("custom"), "custom")
        self.assertEqual(job_type_label("black-screen"), "Black Screen")
        self.assertEqual(job_type_label("video-loop"), "Video Loop")
        self.assertEqual(short_id("3f2a9c1e-0000"), "3f2a9c1e...")


if __name__ == "__main__":
    unittest.main()
