import json

import httpx
import respx
from typer.testing import CliRunner

from xmasmagic import __version__
from xmasmagic.cli import app
from xmasmagic.config import ARK_URL

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_sizes_lists_presets():
    result = runner.invoke(app, ["sizes"])
    assert result.exit_code == 0
    assert "3072x3072" in result.output


def test_christmas_fails_when_nothing_is_readable(tmp_path):
    bad = tmp_path / "notes.jpg"
    bad.write_text("not really a photo")
    result = runner.invoke(app, ["christmas", str(bad), "--api-key", "k"])
    assert result.exit_code == 1
    assert "could be read" in result.output


def test_christmas_rejects_unknown_intensity(tmp_path, make_image):
    photo = tmp_path / "dog.png"
    photo.write_bytes(make_image())
    result = runner.invoke(app, ["christmas", str(photo), "--intensity", "extreme"])
    assert result.exit_code == 1


@respx.mock
def test_christmas_generates_and_saves(tmp_path, make_image):
    photo = tmp_path / "family.png"
    photo.write_bytes(make_image())
    ark = respx.post(ARK_URL).mock(
        return_value=httpx.Response(
            200, json={"data": [{"url": "https://cdn.example.com/family.jpeg"}]}
        )
    )
    respx.get("https://cdn.example.com/family.jpeg").mock(
        return_value=httpx.Response(200, content=make_image(fmt="JPEG"))
    )
    out = tmp_path / "out"

    result = runner.invoke(
        app,
        ["christmas", str(photo), "--api-key", "k", "--no-hats", "--size", "3K", "-o", str(out)],
    )

    assert result.exit_code == 0, result.output
    sent = json.loads(ark.calls.last.request.content)
    assert sent["size"] == "3072x3072"
    assert "Santa" not in sent["prompt"]
    saved = list(out.glob("family-*-christmas-magic-*.jpeg"))
    assert len(saved) == 1


@respx.mock
def test_christmas_keeps_results_for_photos_with_the_same_name(tmp_path, make_image):
    for folder, color in (("a", (200, 0, 0)), ("b", (0, 200, 0))):
        (tmp_path / folder).mkdir()
        (tmp_path / folder / "photo.png").write_bytes(make_image(color=color))
    respx.post(ARK_URL).mock(
        return_value=httpx.Response(
            200, json={"data": [{"url": "https://cdn.example.com/photo.jpeg"}]}
        )
    )
    respx.get("https://cdn.example.com/photo.jpeg").mock(
        return_value=httpx.Response(200, content=make_image(fmt="JPEG"))
    )
    out = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "christmas",
            str(tmp_path / "a" / "photo.png"),
            str(tmp_path / "b" / "photo.png"),
            "--api-key",
            "k",
            "-o",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    assert len(list(out.glob("photo-*-christmas-magic-*.jpeg"))) == 2


@respx.mock
def test_christmas_exits_nonzero_on_task_error(tmp_path, make_image):
    photo = tmp_path / "cat.png"
    photo.write_bytes(make_image())
    respx.post(ARK_URL).mock(return_value=httpx.Response(500, text="nope"))
    result = runner.invoke(app, ["christmas", str(photo), "--api-key", "k", "--no-save"])
    assert result.exit_code == 1
    assert "error" in result.output


@respx.mock
def test_text_command(tmp_path, make_image):
    respx.post(ARK_URL).mock(
        return_value=httpx.Response(200, json={"data": [{"url": "https://cdn.example.com/t.jpeg"}]})
    )
    respx.get("https://cdn.example.com/t.jpeg").mock(
        return_value=httpx.Response(200, content=make_image(fmt="JPEG"))
    )
    result = runner.invoke(
        app, ["text", "-p", "a snowy village", "--api-key", "k", "-o", str(tmp_path)]
    )
    assert result.exit_code == 0, result.output
    assert len(list(tmp_path.glob("christmas-magic-*.jpeg"))) == 1


def test_text_command_reports_missing_key():
    result = runner.invoke(app, ["text", "-p", "a snowy village"])
    assert result.exit_code == 1
    assert "missing api key" in result.output
