import json

from PIL import Image

from html_images import cli


def make_site(tmp_path, make_image):
    root = tmp_path / "site"
    make_image(root / "src/img/photo.jpg", size=(200, 100))
    page = root / "src/index.html"
    page.write_text('<html><img src="img/photo.jpg?width=100"></html>', encoding="utf-8")
    return root, page


def test_rewrites_files_in_place(tmp_path, make_image, capsys):
    root, page = make_site(tmp_path, make_image)
    assert cli.main(["--root", str(root)]) == 0
    assert page.read_text(encoding="utf-8") == '<html><img src=".img/photo.w100.jpg"></html>'
    with Image.open(root / "src/.img/photo.w100.jpg") as im:
        assert im.size == (100, 50)
    assert "EDIT  index.html" in capsys.readouterr().out


def test_output_directory(tmp_path, make_image):
    root, page = make_site(tmp_path, make_image)
    out = tmp_path / "dist"
    assert cli.main(["--root", str(root), "--output", str(out), "--quiet"]) == 0
    assert (out / "index.html").read_text(encoding="utf-8") == '<html><img src=".img/photo.w100.jpg"></html>'
    assert "width=100" in page.read_text(encoding="utf-8")


def test_dry_run_does_not_write_html(tmp_path, make_image):
    root, page = make_site(tmp_path, make_image)
    before = page.read_text(encoding="utf-8")
    assert cli.main(["--root", str(root), "--dry-run", "--quiet"]) == 0
    assert page.read_text(encoding="utf-8") == before


def test_explicit_files(tmp_path, make_image):
    root, page = make_site(tmp_path, make_image)
    other = root / "src/other.html"
    other.write_text('<img src="img/photo.jpg?height=10">', encoding="utf-8")
    assert cli.main(["--root", str(root), "--quiet", str(other)]) == 0
    assert other.read_text(encoding="utf-8") == '<img src=".img/photo.h10.jpg">'
    assert "width=100" in page.read_text(encoding="utf-8")


def test_clean_removes_temp_directory(tmp_path, make_image):
    root, _ = make_site(tmp_path, make_image)
    (root / "src/.img").mkdir()
    assert cli.main(["--root", str(root), "--clean"]) == 0
    assert not (root / "src/.img").exists()


def test_config_error_exits_nonzero(tmp_path, make_image, capsys):
    root, _ = make_site(tmp_path, make_image)
    config = tmp_path / "bad.json"
    config.write_text(json.dumps({"operatingMode": "fast"}), encoding="utf-8")
    assert cli.main(["--root", str(root), "--config", str(config)]) == 1
    assert capsys.readouterr().err.startswith("ERR   ")


def test_dev_mode_installs_shutdown_handler(tmp_path, make_image, monkeypatch):
    root, page = make_site(tmp_path, make_image)
    installed = []
    monkeypatch.setattr(cli.signal, "signal", lambda sig, handler: installed.append(sig))
    assert cli.main(["--root", str(root), "--dev", "--mode", "skip", "--quiet"]) == 0
    assert len(installed) == 2
    assert page.read_text(encoding="utf-8") == '<html><img src="img/photo.jpg"></html>'


def test_collect_html_skips_temp_and_transient(tmp_path):
    (tmp_path / ".img").mkdir()
    (tmp_path / ".img/copy.html").write_text("", encoding="utf-8")
    (tmp_path / "a.html").write_text("", encoding="utf-8")
    (tmp_path / ".#a.html").write_text("", encoding="utf-8")
    assert cli.collect_html(tmp_path, ".img") == [tmp_path / "a.html"]


def test_zero_threads_is_rejected(tmp_path, make_image, capsys):
    root, page = make_site(tmp_path, make_image)
    assert cli.main(["--root", str(root), "--threads", "0"]) == 1
    assert capsys.readouterr().err.startswith("ERR   ")
    assert "?width=100" in page.read_text(encoding="utf-8")
