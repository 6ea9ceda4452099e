import os
import argparse
import pytest
from asyrange.config import ServerConfig


def test_defaults(tmp_path):
    config = ServerConfig(root=str(tmp_path / "static"))
    assert config.chunk_size == 64 * 1024
    assert config.max_workers == 10
    assert config.use_ssl is False
    assert os.path.isabs(config.root)


@pytest.mark.parametrize("kwargs", [
    {"chunk_size": 128 * 1024 * 1024},
    {"chunk_size": 10},
    {"max_workers": 0},
    {"port": 70000},
    {"certfile": "cert.pem"},
    {"certfile": "cert.pem", "keyfile": "key.pem", "ssl_selfsigned": True},
    {"read_timeout": 0},
])
def test_invalid(kwargs):
    with pytest.raises(ValueError):
        ServerConfig(**kwargs)


def test_prepare_root_creates_directory(tmp_path):
    config = ServerConfig(root=str(tmp_path / "videos"))
    config.prepare_root()
    assert os.path.isdir(config.root)


def test_prepare_root_without_create(tmp_path):
    config = ServerConfig(root=str(tmp_path / "videos"), create_root=False)
    with pytest.raises(ValueError):
        config.prepare_root()


def test_from_args(tmp_path):
    args = argparse.Namespace(
        root=str(tmp_path), host='0.0.0.0', port=9000, chunk_size=8192, workers=4,
        max_upload_size=2048, read_timeout=5.0, no_create=True, certfile=None,
        keyfile=None, ssl_selfsigned=False, debug=True,
    )
    config = ServerConfig.from_args(args)
    assert config.port == 9000
    assert config.max_workers == 4
    assert config.create_root is False
    assert config.debug is True
