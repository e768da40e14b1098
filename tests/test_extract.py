import pytest

from mime_view.errors import ArtifactWriteFailure, MissingBody, SourceUnreadable
from mime_view.extract.extractor import PartExtractor
from mime_view.parts.model import Part
from mime_view.parts.scanner import load_message
from mime_view.storage.artifacts import ArtifactStore, artifact_name


def _extractor(tmp_path) -> PartExtractor:
    return PartExtractor(ArtifactStore(tmp_path / "artifacts"))


def test_extract_exact_byte_range(tmp_path):
    source = tmp_path / "raw.bin"
    source.write_bytes(b"0123456789trailing junk")
    part = Part(content_type="application/octet-stream", source_offset=0, source_end=10)
    path = _extractor(tmp_path).extract(source, part)
    assert path.read_bytes() == b"0123456789"
    assert path.parent == tmp_path / "artifacts"


def test_extract_decodes_transfer_encoding(plain_message, tmp_path):
    graph = load_message(plain_message)
    path = _extractor(tmp_path).extract(plain_message, graph[2])
    assert path.read_bytes() == bytes(range(10))
    assert path.name.endswith("a.bin")


def test_extract_to_target_requires_overwrite(plain_message, tmp_path):
    graph = load_message(plain_message)
    target = tmp_path / "saved.bin"
    target.write_bytes(b"keep me")
    extractor = _extractor(tmp_path)

    with pytest.raises(ArtifactWriteFailure):
        extractor.extract(plain_message, graph[2], target=target)
    assert target.read_bytes() == b"keep me"

    extractor.extract(plain_message, graph[2], target=target, overwrite=True)
    assert target.read_bytes() == bytes(range(10))
    assert [p.name for p in tmp_path.iterdir() if p.name.startswith(".mimeview-")] == []


def test_container_part_has_no_body(plain_message, tmp_path):
    graph = load_message(plain_message)
    with pytest.raises(MissingBody):
        _extractor(tmp_path).extract(plain_message, graph.root)


def test_offset_past_end_is_source_unreadable(tmp_path):
    source = tmp_path / "short.bin"
    source.write_bytes(b"abc")
    part = Part(content_type="text/plain", source_offset=100, source_end=110)
    with pytest.raises(SourceUnreadable):
        _extractor(tmp_path).extract(source, part)


def test_missing_source_is_source_unreadable(tmp_path):
    part = Part(content_type="text/plain", source_offset=0, source_end=1)
    with pytest.raises(SourceUnreadable):
        _extractor(tmp_path).extract(tmp_path / "gone.eml", part)


def test_unwritable_target_is_write_failure(tmp_path):
    source = tmp_path / "raw.bin"
    source.write_bytes(b"data")
    blocker = tmp_path / "not-a-dir"
    blocker.write_bytes(b"")
    part = Part(content_type="text/plain", source_offset=0, source_end=4)
    with pytest.raises(ArtifactWriteFailure):
        _extractor(tmp_path).extract(source, part, target=blocker / "out.txt")


def test_artifact_names_keep_only_the_last_segment(tmp_path):
    assert artifact_name(Part(filename="../../etc/passwd")) == "passwd"
    assert artifact_name(Part(filename="C:\\Users\\x\\report.pdf")) == "report.pdf"
    assert artifact_name(Part(name="fallback.txt")) == "fallback.txt"
    assert artifact_name(Part(filename="..", name="dir/")) == "mimetmp"

    store = ArtifactStore(tmp_path / "artifacts")
    first = store.tmp_path_for(Part(filename="../x.txt"))
    second = store.tmp_path_for(Part(filename="../x.txt"))
    assert first != second
    assert first.parent == second.parent == tmp_path / "artifacts"
    assert store.export_path_for(Part(filename="/tmp/../evil.sh")) == tmp_path / "artifacts" / "evil.sh"
    assert store.export_path_for(Part()) is None


def test_temporary_artifact_is_removed(tmp_path):
    store = ArtifactStore(tmp_path / "artifacts")
    with store.temporary(Part(filename="x.txt")) as path:
        path.write_bytes(b"x")
        assert path.exists()
    assert not path.exists()


def test_write_artifact_never_replaces_a_file_created_meanwhile(tmp_path, monkeypatch):
    import tempfile

    from mime_view.extract.extractor import write_artifact

    target = tmp_path / "out.bin"
    real_mkstemp = tempfile.mkstemp

    def mkstemp_then_create_target(*args, **kwargs):
        result = real_mkstemp(*args, **kwargs)
        target.write_bytes(b"theirs")
        return result

    monkeypatch.setattr(tempfile, "mkstemp", mkstemp_then_create_target)
    with pytest.raises(ArtifactWriteFailure):
        write_artifact(target, b"ours")
    assert target.read_bytes() == b"theirs"
    assert list(tmp_path.glob(".mimeview-*")) == []
