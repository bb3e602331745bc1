import io

from html_images.errors import GENERATION, INVALID_PARAMETER, Notice
from html_images.report import Reporter, short_label


def test_short_label():
    assert short_label("photo.jpg") == "photo.jpg"
    long_name = "a" * 40 + ".jpg"
    assert len(short_label(long_name)) == 30
    assert short_label(long_name).endswith("…")


def test_notice_prefixes():
    err = io.StringIO()
    reporter = Reporter(err=err)
    reporter.notice(Notice(INVALID_PARAMETER, "Image quality x is not valid integer.", "img/a.jpg?quality=x"))
    reporter.notice(Notice(GENERATION, "Failed to generate image: boom"))
    lines = err.getvalue().splitlines()
    assert lines[0].startswith("WARN  Image quality x")
    assert lines[0].endswith("[img/a.jpg?quality=x]")
    assert lines[1] == "ERR   Failed to generate image: boom"


def test_generated_and_batch_lines():
    out = io.StringIO()
    reporter = Reporter(out=out)
    reporter.generated("photo.w100.jpg", 120, 14, 0.25)
    reporter.batch(1, 3, 0.5)
    lines = out.getvalue().splitlines()
    assert lines[0].startswith("GEN   photo.w100.jpg")
    assert "(120 kB -> 14 kB)" in lines[0]
    assert lines[0].endswith("in 0.25s")
    assert lines[1] == "DONE  generated 1 of 3 image reference(s) in 0.50s"


def test_quiet_keeps_notices(capsys):
    reporter = Reporter(quiet=True)
    reporter.generated("a.jpg", 1, 1, 0.1)
    reporter.batch(1, 1, 0.1)
    reporter.notice(Notice(INVALID_PARAMETER, "bad width"))
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "WARN  bad width" in captured.err
