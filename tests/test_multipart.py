"""Tests for the spooling multipart encoder."""

import io
import tempfile

import pytest

import gateway.multipart as multipart
from gateway.exceptions import LocalIOError
from gateway.multipart import NamedStream, spool_form


class BrokenStream(io.RawIOBase):
    """Source stream that fails on read."""

    def readable(self):
        return True

    def read(self, size=-1):
        raise OSError("disk read failed")


@pytest.fixture
def tracked_spools(monkeypatch):
    """Record every spool file created by the encoder."""
    created = []
    real_temporary_file = tempfile.TemporaryFile

    def tracking_temporary_file(*args, **kwargs):
        spool = real_temporary_file(*args, **kwargs)
        created.append(spool)
        return spool

    monkeypatch.setattr(multipart.tempfile, 'TemporaryFile', tracking_temporary_file)
    return created


def test_spool_form_encodes_all_parts():
    fields = {
        'file': NamedStream('notes.txt', io.BytesIO(b'hello world')),
        'DisplayName': 'notes.txt',
    }

    with spool_form(fields) as form:
        body = form.file.read()

    assert form.content_type.startswith('multipart/form-data; boundary=')
    boundary = form.content_type.split('boundary=', 1)[1].encode()
    assert form.content_length == len(body)
    assert body.startswith(b'--' + boundary)
    assert body.rstrip().endswith(b'--' + boundary + b'--')
    assert b'Content-Disposition: form-data; name="file"; filename="notes.txt"' in body
    assert b'Content-Disposition: form-data; name="DisplayName"\r\n\r\nnotes.txt' in body
    assert b'\r\n\r\nhello world\r\n' in body


def test_spool_form_copies_large_stream():
    payload = bytes(range(256)) * 4096

    with spool_form({'file': NamedStream('big.bin', io.BytesIO(payload))}) as form:
        body = form.file.read()

    assert payload in body
    assert form.content_length > len(payload)


def test_source_closed_after_spooling():
    source = io.BytesIO(b'data')

    with spool_form({'file': NamedStream('a', source)}):
        assert source.closed


def test_spool_removed_on_success(tracked_spools):
    with spool_form({'file': NamedStream('a', io.BytesIO(b'data'))}) as form:
        assert not form.file.closed

    assert len(tracked_spools) == 1
    assert tracked_spools[0].closed


def test_spool_removed_when_caller_fails(tracked_spools):
    with pytest.raises(RuntimeError):
        with spool_form({'file': NamedStream('a', io.BytesIO(b'data'))}):
            raise RuntimeError("send failed")

    assert tracked_spools[0].closed


def test_copy_failure_is_local_io_error(tracked_spools):
    source = BrokenStream()

    with pytest.raises(LocalIOError, match='disk read failed'):
        with spool_form({'file': NamedStream('a', source)}):
            pytest.fail("body must not be yielded")

    assert source.closed
    assert tracked_spools[0].closed


def test_spool_creation_failure(monkeypatch):
    def no_space(*args, **kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(multipart.tempfile, 'TemporaryFile', no_space)
    source = io.BytesIO(b'data')

    with pytest.raises(LocalIOError, match='spool'):
        with spool_form({'file': NamedStream('a', source)}):
            pass

    assert source.closed


def test_text_fields_precede_file_parts():
    fields = {
        'file': NamedStream('a.bin', io.BytesIO(b'payload')),
        'DisplayName': 'docs/a.bin',
    }

    with spool_form(fields) as form:
        body = form.file.read()

    assert body.index(b'name="DisplayName"') < body.index(b'name="file"')
