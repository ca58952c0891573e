from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from media_browser.config import Settings
from media_browser.main import create_app
from media_browser.services import streaming

PAYLOAD = bytes(i % 251 for i in range(500))


@pytest.fixture
def media_root(tmp_path):
    root = tmp_path / 'media'
    root.mkdir()
    (root / 'clip.mp4').write_bytes(PAYLOAD)
    (root / 'shows').mkdir()
    (root / 'shows' / 'e01.mkv').write_bytes(b'episode')
    (root / 'notes.unknownext').write_bytes(b'?')
    return root


@pytest.fixture
def client(media_root):
    app = create_app(Settings(media_root=str(media_root), stream_chunk_size=1024))
    return TestClient(app)


def test_full_file_without_range(client):
    response = client.get('/api/stream', params={'path': 'clip.mp4'})

    assert response.status_code == 200
    assert response.headers['content-length'] == '500'
    assert response.headers['accept-ranges'] == 'bytes'
    assert response.headers['content-type'] == 'video/mp4'
    assert 'content-range' not in response.headers
    assert response.content == PAYLOAD


def test_partial_content_for_explicit_range(client):
    response = client.get('/api/stream', params={'path': 'clip.mp4'}, headers={'Range': 'bytes=100-199'})

    assert response.status_code == 206
    assert response.headers['content-range'] == 'bytes 100-199/500'
    assert response.headers['content-length'] == '100'
    assert response.headers['accept-ranges'] == 'bytes'
    assert response.content == PAYLOAD[100:200]


def test_open_ended_and_suffix_ranges(client):
    tail = client.get('/api/stream', params={'path': 'clip.mp4'}, headers={'Range': 'bytes=450-'})
    suffix = client.get('/api/stream', params={'path': 'clip.mp4'}, headers={'Range': 'bytes=-10'})
    whole = client.get('/api/stream', params={'path': 'clip.mp4'}, headers={'Range': 'bytes=-9000'})

    assert tail.headers['content-range'] == 'bytes 450-499/500'
    assert tail.content == PAYLOAD[450:]
    assert suffix.headers['content-range'] == 'bytes 490-499/500'
    assert suffix.content == PAYLOAD[-10:]
    assert whole.headers['content-range'] == 'bytes 0-499/500'
    assert whole.content == PAYLOAD


@pytest.mark.parametrize(
    ('header', 'start', 'stop'),
    [('bytes=3-4001', 3, 4002), ('bytes=1024-3071', 1024, 3072), ('bytes=1000-', 1000, 5000), (None, 0, 5000)],
)
def test_ranges_spanning_several_copy_buffers(tmp_path, header, start, stop):
    data = bytes(i % 253 for i in range(5000))
    (tmp_path / 'long.mp4').write_bytes(data)
    client = TestClient(create_app(Settings(media_root=str(tmp_path), stream_chunk_size=1024)))
    headers = {'Range': header} if header else {}

    response = client.get('/api/stream', params={'path': 'long.mp4'}, headers=headers)

    assert response.status_code == (206 if header else 200)
    assert response.headers['content-length'] == str(stop - start)
    assert response.content == data[start:stop]


def test_single_byte_range(client):
    response = client.get('/api/stream', params={'path': 'clip.mp4'}, headers={'Range': 'bytes=499-499'})

    assert response.status_code == 206
    assert response.content == PAYLOAD[499:]


@pytest.mark.parametrize('header', ['bytes=600-700', 'bytes=200-100', 'bytes=0-500', 'bytes=abc-def', 'bytes=0-1,4-5'])
def test_unsatisfiable_or_malformed_range_returns_416(client, header):
    response = client.get('/api/stream', params={'path': 'clip.mp4'}, headers={'Range': header})

    assert response.status_code == 416
    assert response.headers['content-range'] == 'bytes */500'
    assert response.content == b''


def test_unknown_extension_falls_back_to_octet_stream(client):
    response = client.get('/api/stream', params={'path': 'notes.unknownext'})

    assert response.headers['content-type'] == 'application/octet-stream'


def test_stream_requires_path(client):
    response = client.get('/api/stream')

    assert response.status_code == 400
    assert response.json() == {'detail': 'path required'}


def test_stream_rejects_traversal_without_leaking_paths(client, media_root):
    response = client.get('/api/stream', params={'path': '../../etc/passwd'})

    assert response.status_code == 400
    assert str(media_root) not in response.text


@pytest.mark.parametrize('path', ['missing.mp4', 'shows'])
def test_stream_missing_file_or_directory_is_404(client, path):
    response = client.get('/api/stream', params={'path': path})

    assert response.status_code == 404


def test_stream_open_failure_is_500(client, monkeypatch):
    def _fail(_path, _offset):
        raise streaming.StorageError('Cannot open file')

    monkeypatch.setattr(streaming, '_open_at', _fail)

    response = client.get('/api/stream', params={'path': 'clip.mp4'})

    assert response.status_code == 500
    assert response.json() == {'detail': 'cannot open file'}


def test_tree_endpoint_returns_snapshot(client):
    response = client.get('/api/tree')

    assert response.status_code == 200
    assert response.json() == {
        'media': {'clip.mp4': 500, 'notes.unknownext': 1, 'shows': {'e01.mkv': 7}},
    }


def test_tree_endpoint_search(client):
    response = client.get('/api/tree', params={'search': 'E01'})

    assert response.json() == {'media': {'shows': {'e01.mkv': 7}}}


def test_tree_endpoint_reports_unreadable_root(client, media_root, monkeypatch):
    def _boom(_root, _filter=None):
        raise PermissionError(13, 'Permission denied', str(media_root))

    monkeypatch.setattr('media_browser.services.library.build_tree', _boom)

    response = client.get('/api/tree')

    assert response.status_code == 500
    assert str(media_root) not in response.text


def test_response_carries_security_headers(client):
    response = client.get('/healthz')

    assert response.json() == {'ok': True}
    assert response.headers['x-content-type-options'] == 'nosniff'


@pytest.mark.asyncio
async def test_client_disconnect_stops_copy_and_closes_file(tmp_path):
    source = tmp_path / 'clip.mp4'
    source.write_bytes(PAYLOAD)
    handle = source.open('rb')
    response = streaming.RangeFileResponse(
        handle,
        len(PAYLOAD),
        status_code=200,
        headers={'Content-Length': str(len(PAYLOAD))},
        media_type='video/mp4',
        chunk_size=100,
    )
    sent: list[dict] = []

    async def _receive():
        await asyncio.Event().wait()

    async def _send(message):
        if message['type'] == 'http.response.body' and len(sent) > 1:
            raise OSError(32, 'Broken pipe')
        sent.append(message)

    scope = {'type': 'http', 'asgi': {'version': '3.0', 'spec_version': '2.4'}, 'method': 'GET', 'path': '/', 'headers': []}
    await response(scope, _receive, _send)

    assert handle.closed
    assert [m['type'] for m in sent] == ['http.response.start', 'http.response.body']
    assert sent[1]['body'] == PAYLOAD[:100]


def test_create_app_refuses_missing_root(tmp_path):
    with pytest.raises(RuntimeError):
        create_app(Settings(media_root=str(tmp_path / 'nope')))
