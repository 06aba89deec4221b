import pytest

from ocimage.kbs import SecureChannel
from ocimage.resource import get_resource


class FakeClient:
    def __init__(self):
        self.calls = []

    def get_resource(self, kbc_name, resource_path, kbs_uri):
        self.calls.append((kbc_name, resource_path, kbs_uri))
        return b"from-kbs"


def test_plain_path_reads_file(tmp_path):
    target = tmp_path / "auth.json"
    target.write_bytes(b"content")
    assert get_resource(str(target)) == b"content"


def test_file_scheme_reads_file(tmp_path):
    target = tmp_path / "policy.json"
    target.write_bytes(b"{}")
    assert get_resource(f"file://{target}") == b"{}"


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_resource(str(tmp_path / "absent"))


def test_unsupported_scheme():
    with pytest.raises(ValueError, match="not support scheme http"):
        get_resource("http://example.com/resource")


def test_kbs_without_channel():
    with pytest.raises(RuntimeError, match="Uninitialized secure channel"):
        get_resource("kbs:///default/credential/test")


def test_kbs_uses_channel(tmp_path):
    client = FakeClient()
    channel = SecureChannel("kbc::uri", client, tmp_path)
    assert get_resource("kbs:///default/credential/test", channel) == b"from-kbs"
    assert client.calls == [("kbc", "/default/credential/test", "uri")]