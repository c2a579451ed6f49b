import asyncio
import json
from pathlib import Path

import pytest

from pack_compiler import __main__ as entrypoint
from pack_compiler.config import Settings
from pack_compiler.store import PackStore

INPUTS = ("INPUT_SRC", "INPUT_DEST", "INPUT_RECURSIVE", "INPUT_LOG", "INPUT_HIERARCHY")


def test_settings_from_env_defaults():
    settings = Settings.from_env({"INPUT_SRC": "packs/src", "INPUT_DEST": " packs/out "})

    assert settings.src == Path("packs/src")
    assert settings.dest == Path("packs/out")
    assert settings.recursive is False
    assert settings.log is False
    assert settings.hierarchy is None
    assert settings.log_level == "INFO"


def test_settings_from_env_overrides():
    settings = Settings.from_env(
        {
            "INPUT_SRC": "src",
            "INPUT_DEST": "dest",
            "INPUT_RECURSIVE": "Yes",
            "INPUT_LOG": "1",
            "INPUT_HIERARCHY": "hierarchy.yml",
            "LOG_LEVEL": "debug",
        }
    )

    options = settings.compile_options()
    assert options.recursive is True
    assert options.log is True
    assert options.transform_entry is None
    assert settings.hierarchy == Path("hierarchy.yml")
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env", [{}, {"INPUT_SRC": "src"}, {"INPUT_SRC": "src", "INPUT_DEST": " "}]
)
def test_settings_require_src_and_dest(env):
    with pytest.raises(RuntimeError, match="INPUT_SRC and INPUT_DEST"):
        Settings.from_env(env)


def test_escape_message():
    assert entrypoint.escape_message("50% done\r\nnext") == "50%25 done%0D%0Anext"


def _run_main(monkeypatch, env):
    monkeypatch.setattr(entrypoint, "load_dotenv", lambda: None)
    monkeypatch.setattr(entrypoint, "setup_logging", lambda *args, **kwargs: None)
    for name in INPUTS:
        monkeypatch.delenv(name, raising=False)
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    try:
        entrypoint.main()
    except SystemExit as exc:
        return exc.code
    return 0


def _read_items(dest):
    async def read():
        async with PackStore(dest) as store:
            return await store.items()

    return dict(asyncio.run(read()))


def test_main_compiles_pack(tmp_path, monkeypatch):
    src, dest = tmp_path / "src", tmp_path / "pack"
    src.mkdir()
    (src / "item.json").write_text(
        json.dumps({"key": "w!items!I1", "id": "I1"}), encoding="utf-8"
    )

    code = _run_main(monkeypatch, {"INPUT_SRC": str(src), "INPUT_DEST": str(dest)})

    assert code == 0
    assert _read_items(dest) == {"w!items!I1": {"id": "I1", "effects": []}}


def test_main_reports_pack_errors(tmp_path, monkeypatch, capsys):
    src, dest = tmp_path / "src", tmp_path / "pack"
    src.mkdir()
    (src / "bad.json").write_text(json.dumps({"id": "I1"}), encoding="utf-8")

    code = _run_main(monkeypatch, {"INPUT_SRC": str(src), "INPUT_DEST": str(dest)})

    assert code == 2
    assert "::error::Invalid document key" in capsys.readouterr().out


def test_main_reports_missing_configuration(monkeypatch, capsys):
    code = _run_main(monkeypatch, {})

    assert code == 1
    assert "::error::Configuration error" in capsys.readouterr().out


def test_main_uses_custom_hierarchy(tmp_path, monkeypatch):
    src, dest = tmp_path / "src", tmp_path / "pack"
    src.mkdir()
    (src / "bag.json").write_text(
        json.dumps(
            {"key": "w!bags!B1", "id": "B1", "contents": [{"key": "w!x!C1", "id": "C1"}]}
        ),
        encoding="utf-8",
    )
    hierarchy = tmp_path / "hierarchy.yml"
    hierarchy.write_text("bags:\n  contents: []\n", encoding="utf-8")

    code = _run_main(
        monkeypatch,
        {
            "INPUT_SRC": str(src),
            "INPUT_DEST": str(dest),
            "INPUT_HIERARCHY": str(hierarchy),
        },
    )

    assert code == 0
    assert _read_items(dest) == {
        "w!bags!B1": {"id": "B1", "contents": ["C1"]},
        "w!x!C1": {"id": "C1"},
    }
