from pathlib import Path

import pytest

from mime_view.errors import SourceUnreadable
from mime_view.view.mimeview import MimeView


def _view(config, text_view, surface, image_view=None):
    return MimeView(config, text_view, image_view=image_view, surface=surface, reporter=lambda _msg: None)


def test_show_message_selects_first_row_once(config, text_view, surface, plain_message):
    view = _view(config, text_view, surface)
    populated = []

    def populate(rows):
        populated.append(len(rows))
        # A tree widget emits selection changes while it is being filled.
        assert not view.row_selected(1)

    view.rows_listeners.append(populate)
    rows = view.show_message(plain_message)

    assert populated == [4]
    assert [row.part for row in rows] == [0, 1, 2, 3]
    assert view.open_position == 0
    assert [call for call in text_view.calls if call[0] != "clear"] == [("text", 0)]


def test_show_message_missing_file(config, text_view, surface, tmp_path):
    view = _view(config, text_view, surface)
    with pytest.raises(SourceUnreadable):
        view.show_message(tmp_path / "nope.eml")
    assert view.rows == []
    assert view.open_part is None


def test_reopening_resets_selection(config, text_view, surface, plain_message):
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    view.select_row(2)
    view.show_message(plain_message)
    assert view.open_position == 0


def test_row_navigation(config, text_view, surface, plain_message):
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    assert not view.select_prev()
    assert view.select_next()
    assert view.open_position == 1
    view.select_row(3)
    assert not view.select_next()
    assert view.select_prev()
    assert view.open_position == 2
    with pytest.raises(IndexError):
        view.select_row(9)


def test_menu_state(config, text_view, surface, plain_message):
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    view.select_row(1)
    assert view.menu_state() == {"save_as", "open"}
    view.select_row(2)
    assert view.menu_state() == {"save_as", "display_as_text"}
    view.clear()
    assert view.menu_state() == set()


def test_save_as_asks_before_overwriting(config, text_view, surface, plain_message, tmp_path):
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    view.select_row(2)
    target = tmp_path / "out" / "a.bin"

    assert view.save_as(target) == target
    assert target.read_bytes() == bytes(range(10))

    target.write_bytes(b"mine")
    asked = []
    assert view.save_as(target, confirm_overwrite=lambda path: asked.append(path) or False) is None
    assert asked == [target]
    assert target.read_bytes() == b"mine"

    assert view.save_as(target, confirm_overwrite=lambda path: True) == target
    assert target.read_bytes() == bytes(range(10))


def test_save_as_keeps_artifact(config, text_view, surface, plain_message, tmp_path):
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    view.select_row(1)
    saved = view.save_as(tmp_path / "hello.txt")
    view.clear()
    assert saved.read_bytes() == b"hello world"


def test_drag_uri_exports_named_file(config, text_view, surface, plain_message):
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    view.select_row(2)
    uri = view.drag_uri()
    exported = Path(config.tmp_dir) / "a.bin"
    assert uri == exported.resolve().as_uri()
    assert exported.read_bytes() == bytes(range(10))


def test_drag_uri_needs_a_name(config, text_view, surface, plain_message):
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    view.select_row(1)
    assert view.drag_uri() is None


def test_launch_runs_viewer_and_removes_artifact(config, text_view, surface, plain_message, monkeypatch):
    seen = []

    def fake_run(argv):
        path = Path(argv[-1])
        seen.append((argv, path.read_bytes()))
        return 0

    monkeypatch.setattr("mime_view.view.mimeview.run_viewer", fake_run)
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    view.select_row(3)

    assert view.launch()
    argv, contents = seen[0]
    assert argv[0] == "display"
    assert contents == b"not a png"
    assert not Path(argv[-1]).exists()


def test_launch_octet_stream_needs_explicit_command(config, text_view, surface, plain_message, monkeypatch):
    seen = []
    monkeypatch.setattr("mime_view.view.mimeview.run_viewer", lambda argv: seen.append(argv) or 0)
    view = _view(config, text_view, surface)
    view.show_message(plain_message)
    view.select_row(2)

    assert not view.launch()
    assert seen == []
    assert view.open_with("hexdump -C %s")
    assert seen[0][:2] == ["hexdump", "-C"]
    assert seen[0][2].endswith("a.bin")
    assert not any(Path(config.tmp_dir).glob("mimetmp.*"))


def test_selecting_embedded_message_with_unknown_charset(config, surface, tmp_path):
    import io

    from mime_view.render.console import ConsoleTextView

    path = tmp_path / "forward.eml"
    path.write_bytes(
        b'Content-Type: multipart/mixed; boundary="FW"\n'
        b"\n"
        b"--FW\n"
        b"Content-Type: text/plain\n"
        b"\n"
        b"see below\n"
        b"--FW\n"
        b"Content-Type: message/rfc822\n"
        b"\n"
        b"Subject: forwarded\n"
        b"Content-Type: text/plain; charset=x-unknown-cs\n"
        b"\n"
        b"original text\n"
        b"--FW--\n"
    )
    stream = io.StringIO()
    reported = []
    view = MimeView(config, ConsoleTextView(stream), surface=surface, reporter=reported.append)
    view.show_message(path)

    assert view.select_row(2)
    assert reported == []
    assert "Subject: forwarded" in stream.getvalue()
    assert "original text" in stream.getvalue()
