import zipfile

import pytest

from themer_bot.archive import ArchiveKind, build_zip, codec_for, extract_zip
from themer_bot.errors import ExtractionError, PackagingError


def test_extract_then_build_preserves_relative_paths_and_contents(tmp_path, make_zip_bytes):
    source = tmp_path / "in.zip"
    source.write_bytes(make_zip_bytes({"a.txt": b"alpha", "b/c.txt": b"gamma"}))
    extracted = tmp_path / "area" / "downloaded_template"

    extract_zip(source, extracted)
    result = build_zip(extracted, tmp_path / "out.zip")

    with zipfile.ZipFile(result) as archive:
        files = {n: archive.read(n) for n in archive.namelist() if not n.endswith("/")}
    assert files == {"a.txt": b"alpha", "b/c.txt": b"gamma"}


def test_extract_rejects_parent_traversal_without_writing(tmp_path, make_zip_bytes):
    source = tmp_path / "evil.zip"
    source.write_bytes(make_zip_bytes({"ok.txt": b"fine", "../../etc/passwd": b"root::0:0"}))
    destination = tmp_path / "deep" / "nested" / "dest"

    with pytest.raises(ExtractionError) as excinfo:
        extract_zip(source, destination)

    assert "../../etc/passwd" in str(excinfo.value)
    assert not destination.exists()
    assert not (tmp_path / "deep" / "etc").exists()


@pytest.mark.parametrize("name", ["/etc/passwd", "C:/Windows/evil.dll", "a/../../escape.txt"])
def test_extract_rejects_absolute_and_escaping_entries(tmp_path, make_zip_bytes, name):
    source = tmp_path / "evil.zip"
    source.write_bytes(make_zip_bytes({name: b"x"}))

    with pytest.raises(ExtractionError):
        extract_zip(source, tmp_path / "dest")


def test_extract_malformed_archive(tmp_path):
    source = tmp_path / "broken.zip"
    source.write_bytes(b"this is not a zip file")

    with pytest.raises(ExtractionError, match="Malformed"):
        extract_zip(source, tmp_path / "dest")


def test_build_never_includes_its_own_output(tmp_path):
    root = tmp_path / "F1"
    (root / "preview").mkdir(parents=True)
    (root / "preview" / "index.html").write_text("<html></html>")
    output = root / "result.zip"

    build_zip(root, output)

    with zipfile.ZipFile(output) as archive:
        assert "result.zip" not in archive.namelist()
        assert "preview/index.html" in archive.namelist()


def test_build_requires_files(tmp_path):
    empty = tmp_path / "empty"
    (empty / "only-a-dir").mkdir(parents=True)

    with pytest.raises(PackagingError):
        build_zip(empty, empty / "result.zip")
    with pytest.raises(PackagingError):
        build_zip(tmp_path / "missing", tmp_path / "result.zip")


def test_archive_kind_lookup_is_closed():
    assert ArchiveKind.from_filetype("ZIP") is ArchiveKind.ZIP
    assert ArchiveKind.from_filetype("tar") is None
    assert ArchiveKind.from_filetype(None) is None
    assert codec_for(ArchiveKind.ZIP).suffix == ".zip"
