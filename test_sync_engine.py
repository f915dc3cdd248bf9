"""
Tests for batch synchronization and offline availability queries.
"""

import json

import pytest

from conftest import RecordingSink, make_response, page
from offline_sync.core.config import SyncConfig
from offline_sync.core.content_extractor import ContentExtractor
from offline_sync.core.errors import ArtifactWriteError, IndexPersistError, StorageError
from offline_sync.core.fetcher import PageFetcher
from offline_sync.core.notifications import COMPLETION_MARKER, CallbackSink
from offline_sync.core.sync_engine import SyncEngine
from offline_sync.utils.file_manager import derive_filename

A = "https://attack.mitre.org/techniques/T1001/"
B = "https://attack.mitre.org/techniques/T1002/"
C = "https://attack.mitre.org/tactics/TA0001/?view=full&lang=en"

HTML_A = page("<main><h1>Data Obfuscation</h1></main>")
HTML_C = page("<div class='tactic-content'><p>Initial Access</p></div>")


@pytest.fixture
def engine(tmp_path, fake_session, fetcher, sink):
    fake_session.routes.update({
        A: make_response(A, body=HTML_A),
        B: make_response(B, status=500, body="server error"),
        C: make_response(C, body=HTML_C),
    })
    return SyncEngine(tmp_path, sink=sink, fetcher=fetcher)


def _index(tmp_path):
    return json.loads((tmp_path / "offline_content" / "index.json").read_text(encoding="utf-8"))


def test_partial_failure_still_succeeds(tmp_path, engine):
    engine.sync([A, B, C])

    assert _index(tmp_path) == {"entries": {A: derive_filename(A), C: derive_filename(C)}}
    assert engine.check_many([A, B, C]) == [True, False, True]
    assert engine.error_tracker.failed_urls() == [B]
    assert engine.error_tracker.errors[0]["type"] == "HTTPStatusError"


def test_progress_is_monotonic_and_ends_complete(engine, sink):
    engine.sync([A, B, C])

    events = sink.progress_events
    assert [e.completed for e in events] == [0, 1, 2, 3]
    assert [e.current_item for e in events] == [A, B, C, COMPLETION_MARKER]
    assert all(e.total == 3 for e in events)
    assert [e.is_complete for e in events] == [False, False, False, True]
    assert events[-1].to_dict() == {
        "total": 3, "completed": 3, "current_item": "Complete", "is_complete": True,
    }


def test_round_trip_returns_extracted_document(engine):
    engine.sync([A])
    assert engine.get_raw(A) == ContentExtractor().extract(HTML_A, A)
    assert "Data Obfuscation" in engine.get_raw(A)


def test_resync_is_idempotent(tmp_path, engine):
    engine.sync([A])
    first_index = _index(tmp_path)
    first_content = engine.get_raw(A)

    engine.sync([A])

    assert _index(tmp_path) == first_index
    assert engine.get_raw(A) == first_content
    artifacts = sorted(p.name for p in (tmp_path / "offline_content").glob("*.html"))
    assert artifacts == [derive_filename(A)]


def test_later_runs_merge_into_existing_index(tmp_path, engine):
    engine.sync([A])
    engine.sync([C])
    assert set(_index(tmp_path)["entries"]) == {A, C}


def test_failed_refetch_keeps_previous_copy(engine, fake_session):
    engine.sync([A])
    fake_session.routes[A] = make_response(A, status=503)

    engine.sync([A])

    assert engine.check_many([A]) == [True]
    assert "Data Obfuscation" in engine.get_raw(A)


def test_missing_artifact_is_not_available(tmp_path, engine, sink):
    engine.sync([A])
    (tmp_path / "offline_content" / derive_filename(A)).unlink()

    assert engine.is_available(A) is False
    assert engine.get_raw(A) is None
    assert engine.check_many([A]) == [False]
    assert sink.contents == []


def test_is_available_delivers_content(engine, sink):
    engine.sync([A])

    assert engine.has_offline_copy(A) is True
    assert sink.contents == []

    assert engine.is_available(A) is True
    assert sink.contents == [engine.get_raw(A)]

    assert engine.is_available(B) is False
    assert len(sink.contents) == 1


def test_queries_without_index(engine):
    assert engine.is_available(A) is False
    assert engine.get_raw(A) is None
    assert engine.check_many([A, B]) == [False, False]
    assert engine.check_many([]) == []


def test_corrupt_index_degrades_to_empty(tmp_path, engine):
    offline_dir = tmp_path / "offline_content"
    offline_dir.mkdir()
    (offline_dir / "index.json").write_text("{ truncated", encoding="utf-8")

    assert engine.check_many([A]) == [False]

    engine.sync([A])

    assert _index(tmp_path) == {"entries": {A: derive_filename(A)}}
    assert len(engine.error_tracker.warnings) == 1


def test_artifact_write_failure_skips_url(tmp_path, engine, monkeypatch):
    original = engine.files.save_artifact

    def failing_save(filename, content, url=None):
        if url == C:
            raise ArtifactWriteError("disk full", url=url)
        return original(filename, content, url=url)

    monkeypatch.setattr(engine.files, "save_artifact", failing_save)

    engine.sync([A, C])

    assert _index(tmp_path) == {"entries": {A: derive_filename(A)}}
    assert engine.error_tracker.failed_urls() == [C]


def test_directory_failure_is_fatal(tmp_path, fetcher, sink):
    base = tmp_path / "base"
    base.mkdir()
    (base / "offline_content").write_text("in the way", encoding="utf-8")
    engine = SyncEngine(base, sink=sink, fetcher=fetcher)

    with pytest.raises(StorageError):
        engine.sync([A])
    assert sink.progress_events == []


def test_index_persist_failure_is_fatal(tmp_path, engine, sink):
    # A directory where index.json should be can be neither read nor replaced.
    (tmp_path / "offline_content" / "index.json").mkdir(parents=True)

    with pytest.raises(IndexPersistError):
        engine.sync([A])
    assert not any(e.is_complete for e in sink.progress_events)


def test_empty_batch_emits_only_completion(tmp_path, engine, sink):
    engine.sync([])

    assert [e.to_dict() for e in sink.progress_events] == [
        {"total": 0, "completed": 0, "current_item": COMPLETION_MARKER, "is_complete": True},
    ]
    assert _index(tmp_path) == {"entries": {}}


def test_failing_sink_does_not_break_sync(tmp_path, fetcher, fake_session):
    class ExplodingSink(RecordingSink):
        def progress(self, progress):
            raise RuntimeError("ui gone")

    fake_session.routes[A] = make_response(A, body=HTML_A)
    engine = SyncEngine(tmp_path, sink=ExplodingSink(), fetcher=fetcher)

    engine.sync([A])

    assert engine.check_many([A]) == [True]


def test_bounded_parallel_sync(tmp_path, fake_session, fetcher, sink):
    urls = [f"https://example.com/page/{i}" for i in range(8)]
    for url in urls:
        fake_session.routes[url] = make_response(url, body=page(f"<main>{url}</main>"))
    fake_session.routes[urls[3]] = make_response(urls[3], status=404)

    engine = SyncEngine(tmp_path, sink=sink, fetcher=fetcher, config=SyncConfig(concurrency=4))
    engine.sync(urls)

    completed = [e.completed for e in sink.progress_events]
    assert completed == sorted(completed)
    assert len(sink.progress_events) == len(urls) + 1
    assert sink.progress_events[-1].is_complete
    assert sink.progress_events[-1].completed == len(urls)
    assert sorted(e.current_item for e in sink.progress_events[:-1]) == sorted(urls)

    expected = [url != urls[3] for url in urls]
    assert engine.check_many(urls) == expected
    assert set(_index(tmp_path)["entries"]) == {u for u in urls if u != urls[3]}


def test_engine_builds_components_from_config(tmp_path):
    config = SyncConfig(request_timeout=12, user_agent="Agent/2", document_title="Docs",
                        content_selectors=[".body"])
    engine = SyncEngine(tmp_path, config=config)
    try:
        assert engine.fetcher.timeout == 12
        assert engine.fetcher.session.headers["User-Agent"] == "Agent/2"
        assert engine.extractor.title == "Docs"
        assert engine.offline_dir == tmp_path / "offline_content"
    finally:
        engine.close()


def test_tracker_reports_only_the_latest_run(engine, fake_session):
    engine.sync([B])
    assert engine.error_tracker.failed_urls() == [B]

    fake_session.routes[B] = make_response(B, body=HTML_A)
    engine.sync([B])

    assert engine.error_tracker.failed_urls() == []
    assert engine.error_tracker.get_error_summary()["total_errors"] == 0


def test_malformed_host_does_not_abort_batch(tmp_path):
    engine = SyncEngine(tmp_path, fetcher=PageFetcher(timeout=2))
    try:
        engine.sync(["https://a..b/"])

        assert engine.check_many(["https://a..b/"]) == [False]
        assert _index(tmp_path) == {"entries": {}}
        assert engine.error_tracker.failed_urls() == ["https://a..b/"]
    finally:
        engine.close()


def test_callback_sink_receives_notifications(tmp_path, fetcher, fake_session):
    fake_session.routes[A] = make_response(A, body=HTML_A)
    events, contents = [], []
    engine = SyncEngine(tmp_path, fetcher=fetcher,
                        sink=CallbackSink(on_progress=events.append, on_content=contents.append))

    engine.sync([A])
    assert engine.is_available(A) is True

    assert [e.current_item for e in events] == [A, COMPLETION_MARKER]
    assert contents == [engine.get_raw(A)]


def test_progress_only_callback_sink(tmp_path, fetcher, fake_session):
    fake_session.routes[A] = make_response(A, body=HTML_A)
    events = []
    engine = SyncEngine(tmp_path, fetcher=fetcher, sink=CallbackSink(on_progress=events.append))

    engine.sync([A])

    assert engine.is_available(A) is True
    assert events[-1].is_complete


def test_long_non_ascii_url_is_stored(tmp_path, fetcher, fake_session):
    url = "https://ja.example.org/wiki/" + "日" * 120
    fake_session.routes[url] = make_response(url, body=page("<main>長い題名</main>"))
    engine = SyncEngine(tmp_path, fetcher=fetcher)

    engine.sync([url])

    assert engine.check_many([url]) == [True]
    assert "長い題名" in engine.get_raw(url)
