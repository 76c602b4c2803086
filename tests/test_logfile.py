from tinyhttpd.logfile import AppendFile, LogFile


def test_append_file_writes_after_flush(tmp_path):
    path = tmp_path / "out.log"
    with AppendFile(path) as f:
        f.append(b"line one\n")
        f.append(b"line two\n")
        f.flush()
        assert path.read_bytes() == b"line one\nline two\n"


def test_append_file_keeps_existing_content(tmp_path):
    path = tmp_path / "out.log"
    path.write_bytes(b"old\n")
    with AppendFile(path) as f:
        f.append(b"new\n")
    assert path.read_bytes() == b"old\nnew\n"


def test_append_file_buffers_until_flush(tmp_path):
    path = tmp_path / "out.log"
    f = AppendFile(path)
    f.append(b"pending")
    assert path.read_bytes() == b""
    f.close()
    assert path.read_bytes() == b"pending"


def test_log_file_flushes_every_n(tmp_path):
    path = tmp_path / "server.log"
    log = LogFile(path, flush_every_n=2)
    log.append(b"a")
    assert path.read_bytes() == b""
    log.append(b"b")
    assert path.read_bytes() == b"ab"
    log.append(b"c")
    assert path.read_bytes() == b"ab"
    log.flush()
    assert path.read_bytes() == b"abc"
    log.close()


def test_log_file_close_writes_everything(tmp_path):
    path = tmp_path / "server.log"
    lines = [f"entry {i}\n".encode() for i in range(10)]
    with LogFile(path) as log:
        for line in lines:
            log.append(line)
    assert path.read_bytes() == b"".join(lines)