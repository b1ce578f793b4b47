import io
import tarfile

import pytest

from cijob.errors import OperationFailure
from cijob.services.archive import ArchiveService


def _write_tar(path, entries):
    with tarfile.open(path, "w:gz") as tar_file:
        for name, payload in entries:
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            tar_file.addfile(info, io.BytesIO(payload))


def test_archive_service_blocks_path_traversal(tmp_path):
    service = ArchiveService()

    tar_path = tmp_path / "malicious.tgz"
    _write_tar(tar_path, [("../escape.txt", b"malicious")])

    destination = tmp_path / "extract"
    destination.mkdir()

    with pytest.raises(OperationFailure, match="path traversal"):
        service.safe_extract_tar(str(tar_path), str(destination))

    assert not (tmp_path / "escape.txt").exists()


def test_archive_service_blocks_symlinks(tmp_path):
    service = ArchiveService()

    tar_path = tmp_path / "links.tgz"
    with tarfile.open(tar_path, "w:gz") as tar_file:
        info = tarfile.TarInfo("cov-analysis/link")
        info.type = tarfile.SYMTYPE
        info.linkname = "/etc/passwd"
        tar_file.addfile(info)

    with pytest.raises(OperationFailure, match="is a link"):
        service.safe_extract_tar(str(tar_path), str(tmp_path / "extract"))


def test_archive_service_extracts_valid_tar(tmp_path):
    service = ArchiveService()

    tar_path = tmp_path / "tools.tgz"
    _write_tar(tar_path, [("cov-analysis-linux64/bin/cov-build", b"#!/bin/sh\n")])

    destination = tmp_path / "extract"
    destination.mkdir()

    service.safe_extract_tar(str(tar_path), str(destination))

    extracted = destination / "cov-analysis-linux64" / "bin" / "cov-build"
    assert extracted.read_bytes() == b"#!/bin/sh\n"


def test_archive_service_rejects_invalid_archive(tmp_path):
    service = ArchiveService()
    bogus = tmp_path / "bogus.tgz"
    bogus.write_text("not a tarball", encoding="utf-8")

    with pytest.raises(OperationFailure, match="Invalid tar archive"):
        service.safe_extract_tar(str(bogus), str(tmp_path))


def test_create_tar_gz_keeps_directory_name(tmp_path):
    service = ArchiveService()
    source = tmp_path / "build" / "cov-int"
    source.mkdir(parents=True)
    (source / "emit.db").write_text("data", encoding="utf-8")

    archive = service.create_tar_gz(str(source), str(tmp_path / "build" / "myproject.tgz"))

    with tarfile.open(archive, "r:gz") as tar_file:
        names = tar_file.getnames()
    assert "cov-int/emit.db" in names


def test_create_tar_gz_requires_source_dir(tmp_path):
    service = ArchiveService()

    with pytest.raises(OperationFailure, match="Nothing to archive"):
        service.create_tar_gz(str(tmp_path / "missing"), str(tmp_path / "out.tgz"))
