from docfetch.respbuf import ResponseBuffer


def test_write_returns_length_and_accumulates():
    buf = ResponseBuffer()
    assert buf.write(b"abc") == 3
    buf.write(b"def")
    assert buf.body == b"abcdef"


def test_write_to_copies_everything():
    payload = b"hello world"
    src = ResponseBuffer()
    src.headers.set("Content-Type", "text/plain")
    src.write_header(404)
    src.write(payload)

    dst = ResponseBuffer()
    dst.headers.set("X-Existing", "kept")
    src.write_to(dst)

    assert dst.status == 404
    assert dst.body == payload
    assert dst.headers.get("Content-Type") == "text/plain"
    assert dst.headers.get("Content-Length") == str(len(payload))
    assert dst.headers.get("X-Existing") == "kept"


def test_write_to_empty_buffer_sets_nothing_extra():
    src = ResponseBuffer()
    src.headers.set("Etag", '"x"')
    dst = ResponseBuffer()
    src.write_to(dst)
    assert dst.status == 0
    assert dst.body == b""
    assert "Content-Length" not in dst.headers
    assert dst.headers.get("Etag") == '"x"'


def test_write_to_header_lists_are_independent():
    src = ResponseBuffer()
    src.headers.add("Vary", "Accept")
    dst = ResponseBuffer()
    src.write_to(dst)
    dst.headers.add("Vary", "Accept-Encoding")
    assert src.headers.get_all("Vary") == ["Accept"]