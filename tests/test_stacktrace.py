from __future__ import annotations

from pathlib import Path

import pytest

import faultline
from faultline import stacktrace as stacktrace_module
from faultline.stacktrace import backtrace_lines, normalize_backtrace, stacktrace


@pytest.fixture(autouse=True)
def no_library_paths(monkeypatch):
    monkeypatch.setattr(stacktrace_module, "library_paths", lambda: ())


def _raise_value_error() -> None:
    raise ValueError("boom")


def test_project_frame_is_relative_and_in_project() -> None:
    frames = normalize_backtrace(["/path/app.rb:42:in 'foo'"], project_root="/path")
    assert frames == [{"file": "app.rb", "lineNumber": 42, "method": "foo", "inProject": True}]


def test_backtick_quoted_method_is_accepted() -> None:
    frames = normalize_backtrace(["/path/app.rb:42:in `foo'"], project_root="/path")
    assert frames[0]["method"] == "foo"


def test_frame_without_method() -> None:
    frames = normalize_backtrace(["/srv/app/main.py:7"])
    assert frames == [{"file": "/srv/app/main.py", "lineNumber": 7}]


def test_unparseable_lines_are_dropped() -> None:
    frames = normalize_backtrace(["garbage", "/srv/app/main.py:7:in 'run'", "no line number here"])
    assert [frame["file"] for frame in frames] == ["/srv/app/main.py"]


def test_order_is_preserved() -> None:
    lines = ["/srv/a.py:1:in 'a'", "/srv/b.py:2:in 'b'", "/srv/c.py:3:in 'c'"]
    assert [frame["method"] for frame in normalize_backtrace(lines)] == ["a", "b", "c"]


def test_no_project_root_means_no_in_project_flag() -> None:
    frames = normalize_backtrace(["/path/app.py:1:in 'main'"])
    assert "inProject" not in frames[0]
    assert frames[0]["file"] == "/path/app.py"


def test_sibling_directory_is_not_in_project() -> None:
    frames = normalize_backtrace(["/pathology/app.py:1:in 'main'"], project_root="/path")
    assert "inProject" not in frames[0]
    assert frames[0]["file"] == "/pathology/app.py"


@pytest.mark.parametrize(
    "line",
    [
        "/path/vendor/bundle/lib.rb:3:in 'call'",
        "/path/.venv/lib/python3.12/site-packages/requests/api.py:10:in 'post'",
        "/path/.venv/lib/python3/dist-packages/yaml/loader.py:5:in 'load'",
    ],
)
def test_vendored_frames_are_not_in_project(line: str) -> None:
    frames = normalize_backtrace([line], project_root="/path")
    assert "inProject" not in frames[0]
    assert not frames[0]["file"].startswith("/path/")


def test_internal_frames_are_excluded() -> None:
    package_dir = Path(faultline.__file__).parent
    lines = [
        f"{package_dir}/notification.py:120:in 'deliver'",
        "/srv/app/views.py:9:in 'checkout'",
    ]
    frames = normalize_backtrace(lines)
    assert [frame["file"] for frame in frames] == ["/srv/app/views.py"]


@pytest.mark.parametrize("method", ["__bind_1234_5678", "<genexpr>", "<listcomp>"])
def test_generated_method_names_are_omitted(method: str) -> None:
    frames = normalize_backtrace([f"/srv/app.py:3:in '{method}'"])
    assert "method" not in frames[0]


def test_module_level_method_name_is_kept() -> None:
    frames = normalize_backtrace(["/srv/app.py:3:in '<module>'"])
    assert frames[0]["method"] == "<module>"


def test_relative_paths_are_resolved(tmp_path, monkeypatch) -> None:
    (tmp_path / "app.py").write_text("print('hi')\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    frames = normalize_backtrace(["app.py:5:in 'run'"], project_root=str(tmp_path.resolve()))

    assert frames == [{"file": "app.py", "lineNumber": 5, "method": "run", "inProject": True}]


def test_unresolvable_relative_path_is_kept(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    frames = normalize_backtrace(["missing/file.py:7:in 'go'"])
    assert frames[0]["file"] == "missing/file.py"


def test_library_prefixes_are_stripped(monkeypatch) -> None:
    monkeypatch.setattr(stacktrace_module, "library_paths", lambda: ("/opt/python/lib",))
    frames = normalize_backtrace(["/opt/python/lib/requests/sessions.py:589:in 'request'"])
    assert frames[0]["file"] == "requests/sessions.py"


def test_windows_drive_paths_parse() -> None:
    frames = normalize_backtrace(["C:/apps/shop/app.py:12:in 'main'"])
    assert frames == [{"file": "C:/apps/shop/app.py", "lineNumber": 12, "method": "main"}]


class TestBacktraceLines:
    def test_explicit_backtrace_attribute_wins(self) -> None:
        exc = RuntimeError("x")
        exc.backtrace = ["/srv/a.py:1:in 'a'"]
        assert backtrace_lines(exc) == ["/srv/a.py:1:in 'a'"]

    def test_traceback_is_rendered_most_recent_first(self) -> None:
        try:
            _raise_value_error()
        except ValueError as exc:
            lines = backtrace_lines(exc)

        assert "_raise_value_error" in lines[0]
        assert lines[0].startswith(__file__)
        assert "test_traceback_is_rendered_most_recent_first" in lines[-1]

    def test_unraised_exception_uses_current_stack(self) -> None:
        lines = backtrace_lines(ValueError("never raised"))
        assert any("test_unraised_exception_uses_current_stack" in line for line in lines)


def test_stacktrace_of_raised_exception() -> None:
    project_root = str(Path(__file__).parent)
    try:
        _raise_value_error()
    except ValueError as exc:
        frames = stacktrace(exc, project_root)

    assert frames[0] == {
        "file": Path(__file__).name,
        "lineNumber": frames[0]["lineNumber"],
        "method": "_raise_value_error",
        "inProject": True,
    }
    assert frames[-1]["method"] == "test_stacktrace_of_raised_exception"
