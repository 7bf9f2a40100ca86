import os

import sqlalchemy

from captioner.features.audio_analysis.data.repository import SqlAnalysisStore
from captioner.features.audio_analysis.data.sql_models import AudioAnalysisModel
from captioner.features.audio_analysis.domain.models import AudioAnalysis, MediaFingerprint


def _analysis(path, duration=42.0, size=8000):
    return AudioAnalysis(
        duration=duration,
        file_size_bytes=size,
        average_rms_dbfs=-23.5,
        leading_silence=1.25,
        normalized_audio_path=path
    )


def test_tables_created(test_engine):
    tables = sqlalchemy.inspect(test_engine).get_table_names()
    assert AudioAnalysisModel.__tablename__ in tables


def test_store_round_trip(session_factory, media_file):
    path = media_file("lecture.mp4")
    store = SqlAnalysisStore(session_factory)
    fingerprint = MediaFingerprint.of(path)

    assert store.load(fingerprint) is None

    store.save(fingerprint, _analysis(path))
    loaded = store.load(fingerprint)

    assert loaded is not None
    assert loaded.duration == 42.0
    assert loaded.average_rms_dbfs == -23.5
    assert loaded.leading_silence == 1.25
    assert loaded.file_size_bytes == 8000


def test_save_twice_updates_single_row(session_factory, media_file):
    path = media_file("lecture.mp4")
    store = SqlAnalysisStore(session_factory)
    fingerprint = MediaFingerprint.of(path)

    store.save(fingerprint, _analysis(path, duration=10.0))
    store.save(fingerprint, _analysis(path, duration=11.0))

    with session_factory() as db:
        rows = db.query(AudioAnalysisModel).all()
    assert len(rows) == 1
    assert rows[0].duration == 11.0


def test_modified_file_misses(session_factory, media_file):
    path = media_file("lecture.mp4")
    store = SqlAnalysisStore(session_factory)
    store.save(MediaFingerprint.of(path), _analysis(path))

    # Same path, new content and mtime
    path.write_bytes(b"\x01" * 9000)
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

    assert store.load(MediaFingerprint.of(path)) is None


def test_size_columns_hold_multi_gigabyte_files(session_factory, media_file):
    for column in ("file_size_bytes", "analyzed_size_bytes"):
        assert isinstance(AudioAnalysisModel.__table__.c[column].type, sqlalchemy.BigInteger)

    path = media_file("long_recording.wav")
    store = SqlAnalysisStore(session_factory)
    fingerprint = MediaFingerprint.of(path)
    five_gib = 5 * 1024 ** 3

    store.save(fingerprint, _analysis(path, size=five_gib))

    assert store.load(fingerprint).file_size_bytes == five_gib
