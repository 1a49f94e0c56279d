"""Unit tests for named-pipe key delivery."""

import os
import sys
import threading
import time

import pytest

from keyfile.core.exceptions import OfferError
from keyfile.core.offer import offer_key

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="named pipes are POSIX only")


def _reader(path, out, timeout=5.0):
    # Wait for the writer to create the FIFO, then read everything once.
    deadline = time.monotonic() + timeout
    while not os.path.exists(path):
        if time.monotonic() > deadline:
            return
        time.sleep(0.01)
    with open(path, "rb") as f:
        out.append(f.read())


def test_offer_creates_and_removes_pipe(tmp_path):
    pipe = tmp_path / "key.pipe"
    got = []
    t = threading.Thread(target=_reader, args=(pipe, got), daemon=True)
    t.start()

    offer_key(pipe, b"\x00secret\xff")
    t.join(timeout=5)

    assert got == [b"\x00secret\xff"]
    assert not pipe.exists()


def test_offer_uses_existing_pipe(tmp_path):
    pipe = tmp_path / "key.pipe"
    os.mkfifo(pipe, 0o600)
    got = []
    t = threading.Thread(target=_reader, args=(pipe, got), daemon=True)
    t.start()

    offer_key(str(pipe), b"key")
    t.join(timeout=5)

    assert got == [b"key"]
    # caller-owned pipe is left in place
    assert pipe.exists()


def test_offer_refuses_regular_file(tmp_path):
    path = tmp_path / "plain.txt"
    path.write_bytes(b"")

    with pytest.raises(OfferError, match="not a pipe"):
        offer_key(path, b"key")
    assert path.read_bytes() == b""


def test_offer_bad_directory(tmp_path):
    with pytest.raises(OfferError, match="create pipe"):
        offer_key(tmp_path / "missing" / "key.pipe", b"key")


def test_offer_interrupt_cleans_up(tmp_path, monkeypatch):
    pipe = tmp_path / "key.pipe"

    def interrupted_open(*args, **kwargs):
        raise KeyboardInterrupt

    monkeypatch.setattr("keyfile.core.offer.open", interrupted_open, raising=False)
    with pytest.raises(KeyboardInterrupt):
        offer_key(pipe, b"key")

    assert not pipe.exists()
