import pytest
from typer.testing import CliRunner

from docsearch import __version__
from docsearch.cli import app
from docsearch.config import search_config_holder

runner = CliRunner()


@pytest.fixture
def config_path(make_index, tmp_path):
    make_index(
        "docs",
        [
            {"url": "file:///srv/docs/plan.txt", "title": "Budget plan", "content": "budget for next year"},
            {"url": "file:///srv/docs/board.txt", "content": "board budget", "groups": ["board"]},
        ],
    )
    path = tmp_path / "config.toml"
    path.write_text(
        'default_indexes = ["docs"]\n'
        "[[index]]\n"
        'name = "docs"\n'
        'directory = "indexes/docs"\n'
        'access_controller = "docsearch.access_control:HeaderGroupsAccessController"\n'
    )
    search_config_holder.reset()
    yield str(path)
    search_config_holder.reset()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_encode_and_decode_url():
    result = runner.invoke(app, ["encode-url", "file:///srv/a b.txt"])
    assert result.exit_code == 0
    encoded = result.stdout.strip()
    assert encoded == "file/%24/%24srv/a+b.txt"

    result = runner.invoke(app, ["decode-url", "/docsearch/" + encoded])
    assert result.exit_code == 0
    assert result.stdout.strip() == "file:///srv/a%20b.txt"


def test_encode_rejects_non_file_url():
    result = runner.invoke(app, ["encode-url", "http://example.com/"])
    assert result.exit_code == 1


def test_search(config_path):
    result = runner.invoke(app, ["search", "budget", "--config", config_path])
    assert result.exit_code == 0
    assert "Budget plan" in result.stdout
    assert "board.txt" in result.stdout


def test_search_with_bad_field_option(config_path):
    result = runner.invoke(app, ["search", "budget", "--field", "novalue", "--config", config_path])
    assert result.exit_code == 1


def test_search_unknown_index(config_path):
    result = runner.invoke(app, ["search", "budget", "-i", "nope", "--config", config_path])
    assert result.exit_code == 1
    assert "nope" in result.stdout


def test_check_access(config_path):
    allowed = runner.invoke(
        app,
        ["check-access", "file:///srv/docs/board.txt", "--groups", "board", "--config", config_path],
    )
    assert allowed.exit_code == 0

    denied = runner.invoke(
        app,
        ["check-access", "file:///srv/docs/board.txt", "--groups", "staff", "--config", config_path],
    )
    assert denied.exit_code == 2
