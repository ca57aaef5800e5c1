"""RecordLoader のテスト"""

import logging

import pytest

from hpksessions.database.keys import PartitionKeyBuilder
from hpksessions.exceptions import BatchLoadError, EncodingError, WriteError
from hpksessions.loader import RecordLoader, encode_session

from conftest import make_session


def test_load_upserts_every_record_with_full_key(store, generator):
    loader = RecordLoader(store, generator)

    report = loader.load(25)

    assert report.succeeded == 25
    assert report.failed == 0
    assert len(store.items) == 25
    assert all(len(segments) == 3 for segments, _ in store.items)


def test_load_zero_records(store, generator):
    report = RecordLoader(store, generator).load(0)

    assert report.total == 0
    assert store.upsert_calls == 0


def test_upserting_same_id_twice_keeps_one_record(mocker, store, generator):
    """同じ id のレコードを2回ロードすると、同じキーと id で upsert され論理レコードは1件であることを確認"""
    session = make_session(id="fixed-id")
    loader = RecordLoader(store, generator)
    spy = mocker.spy(store, "upsert")

    loader.load_sessions([session])
    loader.load_sessions([session])

    assert spy.call_count == 2
    (first_key, first_doc), (second_key, second_doc) = [call.args for call in spy.call_args_list]
    expected_key = PartitionKeyBuilder.for_session(session)
    assert first_key == second_key == expected_key
    assert first_doc["id"] == second_doc["id"] == "fixed-id"
    assert first_doc == second_doc
    assert list(store.items) == [(expected_key.segments, "fixed-id")]


def test_encoding_failures_are_counted_and_batch_fails(mocker, store, generator):
    """10件中2件のエンコードが失敗した場合、成功8件・失敗2件で集計エラーになることを確認"""
    calls = {"count": 0}

    def flaky_encode(session):
        calls["count"] += 1
        if calls["count"] in (3, 7):
            raise EncodingError("boom", record_id=session.id)
        return session.to_document()

    mocker.patch("hpksessions.loader.encode_session", side_effect=flaky_encode)
    loader = RecordLoader(store, generator)

    with pytest.raises(BatchLoadError) as exc_info:
        loader.load(10)

    report = exc_info.value.report
    assert report.succeeded == 8
    assert report.failed == 2
    assert len(store.items) == 8


def test_write_failures_do_not_abort_batch(mocker, generator, caplog):
    """upsert の失敗はログ出力して次のレコードに進むことを確認"""
    caplog.set_level(logging.ERROR)
    failing_store = mocker.Mock()
    failing_store.upsert.side_effect = [None, WriteError("throttled", record_id="x"), None]

    with pytest.raises(BatchLoadError) as exc_info:
        RecordLoader(failing_store, generator).load(3)

    assert failing_store.upsert.call_count == 3
    assert exc_info.value.report.succeeded == 2
    assert exc_info.value.report.failed == 1
    assert "throttled" in caplog.text


def test_progress_is_logged(store, generator, caplog):
    caplog.set_level(logging.INFO)

    RecordLoader(store, generator).load(15)

    assert "進捗: 10/15件" in caplog.text
    assert "進捗: 15/15件" in caplog.text


def test_encode_session_uses_camel_case_fields():
    document = encode_session(make_session())

    assert document["tenantId"] == "MidMarket-Inc"
    assert document["userId"] == "user-192"
    assert document["sessionId"] == "session-5af6ab47"
    assert isinstance(document["timestamp"], str)


def test_encode_session_wraps_serialization_errors(mocker):
    session = mocker.Mock(id="session-record")
    session.to_document.side_effect = ValueError("bad value")

    with pytest.raises(EncodingError) as exc_info:
        encode_session(session)

    assert exc_info.value.record_id == "session-record"
