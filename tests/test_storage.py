import os
import stat
import threading

import pytest

from cryptoapi.models import PriceSnapshot
from cryptoapi.storage import PriceCacheStore


def test_write_then_read_roundtrip(store) -> None:
    prices = {"BTC": 70000.5, "DOGE": 0.1028, "EUR": 1.1865, "POL": 0.1109}
    store.write(PriceSnapshot(prices=prices, last_update="2026-01-01T00:00:00+00:00"))
    assert store.read() == prices
    snapshot = store.read_snapshot()
    assert snapshot is not None
    assert snapshot.last_update == "2026-01-01T00:00:00+00:00"


def test_read_is_idempotent(store) -> None:
    store.write(PriceSnapshot(prices={"BTC": 0.1 + 0.2}, last_update="x"))
    first = store.read()
    second = store.read()
    assert first == second
    assert first["BTC"] == 0.1 + 0.2


def test_write_replaces_previous_contents(store) -> None:
    store.write(PriceSnapshot(prices={"BTC": 1.0, "EUR": 1.1}, last_update="a"))
    store.write(PriceSnapshot(prices={"SOL": 2.0}, last_update="b"))
    assert store.read() == {"SOL": 2.0}


def test_read_missing_file_is_empty(store) -> None:
    assert not store.path.exists()
    assert store.read() == {}
    assert store.read_snapshot() is None


@pytest.mark.parametrize(
    "content",
    ["", "{", "[]", '{"prices": {"BTC": "abc"}, "last_update": "x"}', '{"prices": [1, 2], "last_update": "x"}'],
)
def test_read_malformed_file_is_empty(store, content) -> None:
    store.path.write_text(content)
    assert store.read() == {}


def test_read_accepts_externally_written_file(store) -> None:
    store.path.write_text('{"prices":{"BTC":1.0},"last_update":"x"}')
    assert store.read() == {"BTC": 1.0}


def test_write_leaves_no_temp_files(store) -> None:
    store.write(PriceSnapshot(prices={"BTC": 1.0}, last_update="x"))
    store.write(PriceSnapshot(prices={"BTC": 2.0}, last_update="y"))
    assert os.listdir(store.path.parent) == [store.path.name]


def test_failed_write_keeps_previous_snapshot(store, monkeypatch) -> None:
    store.write(PriceSnapshot(prices={"BTC": 1.0}, last_update="x"))

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("cryptoapi.storage.os.replace", fail_replace)
    with pytest.raises(OSError):
        store.write(PriceSnapshot(prices={"BTC": 2.0}, last_update="y"))

    assert store.read() == {"BTC": 1.0}
    assert os.listdir(store.path.parent) == [store.path.name]


def test_concurrent_reads_never_see_partial_file(store) -> None:
    old = {f"OLD{i}": float(i) for i in range(200)}
    new = {f"NEW{i}": float(i) for i in range(200)}
    store.write(PriceSnapshot(prices=old, last_update="old"))

    seen = []
    done = threading.Event()

    def reader() -> None:
        while not done.is_set():
            seen.append(store.read())

    thread = threading.Thread(target=reader)
    thread.start()
    try:
        for i in range(50):
            store.write(PriceSnapshot(prices=new if i % 2 == 0 else old, last_update=str(i)))
    finally:
        done.set()
        thread.join()

    assert seen
    assert all(prices in (old, new) for prices in seen)


def test_store_creates_parent_directory(tmp_path) -> None:
    store = PriceCacheStore(tmp_path / "nested" / "dir" / "prices.json")
    assert store.path.parent.is_dir()


def test_written_cache_is_world_readable(store) -> None:
    store.write(PriceSnapshot(prices={"BTC": 1.0}, last_update="x"))
    assert stat.S_IMODE(store.path.stat().st_mode) == 0o644
