import json

from PIL import Image

from mandelgif.cli import EXIT_INVALID, EXIT_IO_ERROR, main


def _config(tmp_path, **fields):
    path = tmp_path / "cfg.json"
    base = {"width": 8, "height": 8, "max_iter": 50, "workers": 1}
    base.update(fields)
    path.write_text(json.dumps(base), encoding="utf-8")
    return str(path)


def test_render_then_inspect(tmp_path, capsys):
    out = tmp_path / "cli.gif"
    rc = main(["--config", _config(tmp_path), "render", "--output", str(out), "--total-frames", "2"])
    assert rc == 0
    assert out.exists()

    capsys.readouterr()
    assert main(["inspect", str(out)]) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["frames"] == 2
    assert info["width"] == 8
    assert info["loop"] == 0


def test_invalid_configuration_exits_nonzero(tmp_path):
    out = tmp_path / "never.gif"
    rc = main(["--config", _config(tmp_path), "render", "--output", str(out), "--total-frames", "0"])
    assert rc == EXIT_INVALID
    assert not out.exists()


def test_unwritable_output_exits_nonzero(tmp_path):
    out = tmp_path / "missing-dir" / "zoom.gif"
    rc = main(["--config", _config(tmp_path), "render", "--output", str(out), "--total-frames", "1"])
    assert rc == EXIT_IO_ERROR
    assert not out.exists()


def test_missing_config_file_exits_with_io_error(tmp_path):
    rc = main(["--config", str(tmp_path / "absent.json"), "render", "--output", str(tmp_path / "x.gif")])
    assert rc == EXIT_IO_ERROR


def test_malformed_config_json_exits_invalid(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    rc = main(["--config", str(path), "render", "--output", str(tmp_path / "x.gif")])
    assert rc == EXIT_INVALID
    assert not (tmp_path / "x.gif").exists()


def test_inspect_rejects_unreadable_input(tmp_path):
    assert main(["inspect", str(tmp_path / "absent.gif")]) == EXIT_IO_ERROR
    junk = tmp_path / "junk.gif"
    junk.write_bytes(b"not an image at all")
    assert main(["inspect", str(junk)]) == EXIT_IO_ERROR


def test_inspect_rejects_other_image_formats(tmp_path):
    png = tmp_path / "frame.png"
    Image.new("RGB", (4, 4)).save(png)
    assert main(["inspect", str(png)]) == EXIT_INVALID
