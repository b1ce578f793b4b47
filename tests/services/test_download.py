import pytest
from rich.console import Console

from cijob.errors import OperationFailure
from cijob.services.download import DownloadService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None


class FakeResponse:
    def __init__(self, payload: bytes):
        self.payload = payload
        self.headers = {"Content-Length": str(len(payload))}

    def raise_for_status(self):
        return None

    def iter_content(self, chunk_size=8192):
        yield self.payload

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, payload: bytes):
        self.payload = payload
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return FakeResponse(self.payload)

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        return FakeResponse(self.payload)


class FailingRequestsModule(FakeRequestsModule):
    def get(self, url, **kwargs):
        raise self.RequestException("connection reset")


def _service(requests_module):
    return DownloadService(
        logger=DummyLogger(),
        console=Console(record=True),
        requests_module=requests_module,
    )


def test_download_file_uses_get_by_default(tmp_path):
    requests_module = FakeRequestsModule(payload=b"blob")
    dest = tmp_path / "keys" / "identity.enc"

    _service(requests_module).download_file("https://example.com/key.enc", str(dest))

    assert dest.read_bytes() == b"blob"
    assert requests_module.calls[0][0] == "GET"


def test_download_file_posts_form_data(tmp_path):
    requests_module = FakeRequestsModule(payload=b"tools")
    dest = tmp_path / "tools.tgz"

    _service(requests_module).download_file(
        "https://example.com/download",
        str(dest),
        form_data={"token": "secret", "project": "Bro"},
    )

    method, _url, kwargs = requests_module.calls[0]
    assert method == "POST"
    assert kwargs["data"] == {"token": "secret", "project": "Bro"}
    assert dest.read_bytes() == b"tools"


def test_download_file_wraps_request_errors(tmp_path):
    with pytest.raises(OperationFailure, match="Download failed for key"):
        _service(FailingRequestsModule(payload=b"")).download_file(
            "https://example.com/key.enc",
            str(tmp_path / "key.enc"),
            description="key",
        )
